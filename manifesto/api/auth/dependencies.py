"""
Authentication dependencies
Every protected route resolves the caller through the identity service
"""

from typing import Optional
from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
import logging

from manifesto.core.context import get_identity
from manifesto.core.exceptions import MissingTokenException, InvalidTokenException
from manifesto.services.identity import IdentityClient, IdentityError

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)


async def get_bearer_token(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> str:
    if not credentials or not credentials.credentials:
        raise MissingTokenException()
    return credentials.credentials


async def get_current_user(
    token: str = Depends(get_bearer_token),
    identity: IdentityClient = Depends(get_identity),
) -> dict:
    """
    Get current authenticated user (required)
    Raises 401 if the token is absent or the identity service rejects it
    """
    try:
        user = await identity.get_user(token)
    except IdentityError as e:
        logger.info(f"Token rejected: {e.message}")
        raise InvalidTokenException()

    if not user or not user.get("id"):
        raise InvalidTokenException()
    return user


async def get_current_user_optional(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    identity: IdentityClient = Depends(get_identity),
) -> Optional[dict]:
    """
    Get current user if authenticated, otherwise None
    Useful for endpoints that work for both authenticated and anonymous users
    """
    if not credentials or not credentials.credentials:
        return None
    try:
        user = await identity.get_user(credentials.credentials)
    except IdentityError:
        return None
    return user if user and user.get("id") else None
