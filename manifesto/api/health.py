"""Health check and database diagnostics"""

from datetime import datetime, timezone
from fastapi import APIRouter, Depends, Request
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List
import logging

from manifesto.core.context import AppContext, get_context
from manifesto.core.database import get_db
from manifesto.core.responses import PrettyJSONResponse

logger = logging.getLogger(__name__)

router = APIRouter()


def list_routes(request: Request) -> List[str]:
    """Every API endpoint as "METHOD /path", sorted by path"""
    paths = request.app.openapi().get("paths", {})
    endpoints = [
        f"{method.upper()} {path}"
        for path, operations in paths.items()
        if path.startswith("/api")
        for method in operations
    ]
    return sorted(endpoints, key=lambda endpoint: (endpoint.split(" ", 1)[1], endpoint))


@router.get("/health")
async def health_check(request: Request, db: AsyncSession = Depends(get_db)):
    """Liveness with a database round trip"""
    try:
        await db.execute(text("SELECT 1"))
    except (SQLAlchemyError, OSError) as e:
        logger.error(f"Health check failed: {e}")
        return PrettyJSONResponse(
            status_code=500,
            content={
                "status": "error",
                "message": "Database connection failed",
                "error": str(e),
            },
        )

    return {
        "status": "ok",
        "message": "Server is running",
        "database": "connected",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "routes": list_routes(request),
    }


@router.get("/test-db")
async def test_database(context: AppContext = Depends(get_context)):
    """Report server time, version and latency of the configured database"""
    try:
        details = await context.database.describe()
    except (SQLAlchemyError, OSError) as e:
        logger.error(f"Database check failed: {e}")
        return PrettyJSONResponse(
            status_code=500,
            content={
                "status": "error",
                "message": "Database connection failed",
                "error": str(e),
                "hint": "Check DATABASE_URL and that the database accepts connections from this host",
            },
        )

    return {
        "status": "success",
        "message": "Database connection succeeded",
        "data": {**details, "host": context.settings.database_host},
    }
