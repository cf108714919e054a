"""
Authentication dependencies for FastAPI.

This module provides dependencies for protecting routes with bearer-token
identity and per-request role lookup.
"""

from typing import Optional
from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from backend.app.core.jwt import read_identity
from backend.app.core.exceptions import AuthenticationError, InsufficientPermissionsError
from backend.app.db.session import get_db
from backend.app.models.user import User
from backend.app.core.context import AppContext, get_context
from backend.app.domain.lifecycle.coordinator import LifecycleCoordinator

# HTTP Bearer security scheme (errors are raised by get_identity for a uniform 401)
security = HTTPBearer(auto_error=False)


async def get_identity(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> dict:
    """
    FastAPI dependency resolving the caller's verified identity.

    Only the token is checked; the caller does not need a user record yet
    (e.g. when applying as a delivery agent).

    Returns:
        {"email": <lower-cased email from the token's `sub` claim>}

    Raises:
        AuthenticationError: 401 if the header is missing or the token is invalid
    """
    if credentials is None or not credentials.credentials:
        raise AuthenticationError("Unauthorized Access")

    email = read_identity(credentials.credentials)
    if email is None:
        raise AuthenticationError("Could not validate credentials")

    return {"email": email}


async def get_current_user(
    identity: dict = Depends(get_identity),
    db: AsyncSession = Depends(get_db)
) -> dict:
    """
    FastAPI dependency for authenticated, registered callers.

    Looks the caller's role up in the users table on every request so that
    role changes take effect immediately.

    Returns:
        {"email": ..., "user_id": ..., "role": <role value>}

    Raises:
        InsufficientPermissionsError: 403 if the identity has no user record
    """
    result = await db.execute(select(User).where(User.email == identity["email"]))
    user = result.scalar_one_or_none()

    if not user:
        raise InsufficientPermissionsError("User is not registered")

    return {
        "email": user.email,
        "user_id": user.id,
        "role": user.role.value,
    }


def get_coordinator(
    db: AsyncSession = Depends(get_db),
    context: AppContext = Depends(get_context)
) -> LifecycleCoordinator:
    """FastAPI dependency building a lifecycle coordinator for this request's session."""
    return LifecycleCoordinator(db, context.geocoder, context.notifier)
