"""
Actor Authentication

Resolves the authenticated actor for a request from a bearer token.
Tokens are HS256 JWTs whose "sub" claim is the opaque actor id.

A missing or invalid token resolves to None rather than an HTTP error:
the link service owns the decision of how to answer unauthenticated
callers, so every mutation keeps its success/error result shape.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from shortlinks.core.setting import settings

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


def create_access_token(actor_id: str, expires_delta: Optional[timedelta] = None) -> str:
    """
    Issue a signed token for actor_id.

    Args:
        actor_id: Opaque identifier placed in the "sub" claim
        expires_delta: Token lifetime (default: ACCESS_TOKEN_EXPIRE_MINUTES)
    """
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    payload = {"sub": actor_id, "exp": expire}
    return jwt.encode(payload, settings.AUTH_SECRET_KEY, algorithm=settings.AUTH_ALGORITHM)


def decode_actor_id(token: str) -> Optional[str]:
    """Return the actor id carried by token, or None if it is invalid."""
    try:
        payload = jwt.decode(
            token, settings.AUTH_SECRET_KEY, algorithms=[settings.AUTH_ALGORITHM]
        )
    except JWTError as e:
        logger.info(f"Rejected bearer token: {e}")
        return None

    actor_id = payload.get("sub")
    if not isinstance(actor_id, str) or not actor_id:
        return None
    return actor_id


async def get_current_actor(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> Optional[str]:
    """
    FastAPI dependency resolving the actor id of the current request.

    Returns:
        The actor id, or None if the request is not authenticated
    """
    if credentials is None:
        return None
    return decode_actor_id(credentials.credentials)
