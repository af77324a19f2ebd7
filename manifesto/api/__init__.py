"""API routers mounted under /api"""

from fastapi import APIRouter

from .auth.router import router as auth_router
from .books.router import router as books_router
from .cart.router import router as cart_router
from .drafts.router import router as drafts_router
from .health import router as health_router
from .library.router import router as library_router
from .orders.router import router as orders_router
from .profile.router import router as profile_router

api_router = APIRouter()

api_router.include_router(health_router, tags=["Health"])
api_router.include_router(auth_router, prefix="/auth", tags=["Authentication"])
api_router.include_router(cart_router, prefix="/cart", tags=["Cart"])
api_router.include_router(orders_router, prefix="/orders", tags=["Orders"])
api_router.include_router(drafts_router, prefix="/drafts", tags=["Drafts"])
api_router.include_router(library_router, prefix="/library", tags=["Library"])
api_router.include_router(books_router, prefix="/books", tags=["Books"])
api_router.include_router(profile_router, prefix="/profile", tags=["Profile"])
