"""
Security guards for role-based and ownership-based access control.

Provides dependencies for protecting endpoints. Role checks run once per
request, before any lifecycle operation is entered.
"""

from typing import List
from fastapi import Depends
from backend.app.models.enums import UserRole
from backend.app.models.parcel import Parcel
from backend.app.core.dependencies import get_current_user
from backend.app.core.exceptions import InsufficientPermissionsError


def require_role(allowed_roles: List[UserRole]):
    """
    Dependency factory for role-based access control.

    Usage:
        @router.get("/users")
        async def list_users(current_user: dict = Depends(require_role([UserRole.ADMIN]))):
            ...

    Args:
        allowed_roles: List of UserRole enums that are allowed to access the endpoint

    Returns:
        FastAPI dependency function that validates user role

    Raises:
        InsufficientPermissionsError 403 if user role is not in allowed_roles
    """
    async def role_checker(current_user: dict = Depends(get_current_user)) -> dict:
        try:
            user_role = UserRole(current_user.get("role"))
        except ValueError:
            raise InsufficientPermissionsError("Invalid role")

        if user_role not in allowed_roles:
            raise InsufficientPermissionsError(
                f"Access denied. Required role: {', '.join([r.value for r in allowed_roles])}"
            )

        return current_user

    return role_checker


require_admin = require_role([UserRole.ADMIN])
require_customer = require_role([UserRole.CUSTOMER])
require_delivery_agent = require_role([UserRole.DELIVERY_AGENT])


def is_admin(current_user: dict) -> bool:
    return current_user.get("role") == UserRole.ADMIN.value


def enforce_self(email: str, current_user: dict) -> None:
    """Raise 403 unless `email` is the caller's own (case-insensitive)."""
    if not email or email.lower() != current_user.get("email", "").lower():
        raise InsufficientPermissionsError("Unauthorized access")


class ParcelAccessGuard:
    """
    Ownership guard for parcel records.

    Usage:
        parcel_guard = ParcelAccessGuard()

        parcel = await store.get(parcel_id)
        parcel_guard.enforce_viewer(parcel, current_user)
    """

    def can_view(self, parcel: Parcel, current_user: dict) -> bool:
        """
        Admins see every parcel; customers see their own bookings;
        agents see parcels assigned to them.
        """
        if is_admin(current_user):
            return True

        email = current_user.get("email")
        if parcel.owner_email == email:
            return True

        return parcel.agent_email is not None and parcel.agent_email == email

    def enforce_viewer(self, parcel: Parcel, current_user: dict) -> None:
        if not self.can_view(parcel, current_user):
            raise InsufficientPermissionsError(
                "Access denied. You do not have permission to access this parcel."
            )

    def enforce_owner(self, parcel: Parcel, current_user: dict) -> None:
        if parcel.owner_email != current_user.get("email"):
            raise InsufficientPermissionsError(
                "Access denied. You do not own this parcel."
            )

    def enforce_agent(self, parcel: Parcel, current_user: dict, claimed_email: str = None) -> None:
        """
        An agent may update parcels assigned to them; an unassigned parcel
        can only be claimed, and only for themselves.

        Raises:
            InsufficientPermissionsError 403 if either check fails
        """
        email = current_user.get("email")

        if parcel.agent_email is None and claimed_email is None:
            raise InsufficientPermissionsError(
                "Access denied. Agents can only claim unassigned parcels."
            )

        if parcel.agent_email is not None and parcel.agent_email != email:
            raise InsufficientPermissionsError(
                "Access denied. This parcel is assigned to another agent."
            )

        if claimed_email is not None and claimed_email.lower() != email:
            raise InsufficientPermissionsError(
                "Access denied. Agents can only assign parcels to themselves."
            )
