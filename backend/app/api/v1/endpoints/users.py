"""
User API Endpoints.

Registration, admin user management and self role lookup.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Path, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from backend.app.db.session import get_db
from backend.app.models.user import User
from backend.app.models.enums import UserRole, AgentAvailability
from backend.app.schemas.user import UserRegister, UserResponse, UserListResponse, RoleUpdate, RoleResponse
from backend.app.core.dependencies import get_identity, get_coordinator
from backend.app.core.exceptions import ConflictError, ResourceNotFoundError, ValidationError
from backend.app.core.guards import require_admin, enforce_self
from backend.app.domain.lifecycle.coordinator import LifecycleCoordinator
from backend.app.services.audit import log_event, AuditAction

router = APIRouter(prefix="/users", tags=["Users"])


async def _get_user_by_email(db: AsyncSession, email: str) -> Optional[User]:
    result = await db.execute(select(User).where(User.email == email.lower()))
    return result.scalar_one_or_none()


@router.post("", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def register_user(
    user_data: UserRegister,
    db: AsyncSession = Depends(get_db)
):
    """
    Register a new user.

    - Every account starts as a customer; roles are granted by admins.
    - Returns 409 if the email is already registered.
    """
    email = user_data.email.lower()

    if await _get_user_by_email(db, email):
        raise ConflictError("User already exists", details={"email": email})

    new_user = User(
        email=email,
        name=user_data.name,
        photo_url=user_data.photo_url,
        role=UserRole.CUSTOMER,
    )
    db.add(new_user)
    try:
        await db.commit()
    except IntegrityError:
        # A concurrent registration won the unique email index
        await db.rollback()
        raise ConflictError("User already exists", details={"email": email})
    await db.refresh(new_user)

    await log_event(
        db=db,
        action=AuditAction.USER_CREATED,
        actor_email=email,
        target=email,
    )

    return UserResponse.model_validate(new_user)


@router.get("", response_model=UserListResponse)
async def list_users(
    role: Optional[UserRole] = Query(None, description="Filter by role"),
    availability: Optional[AgentAvailability] = Query(None, description="Filter agents by availability"),
    admin: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """
    List users (admin-only).

    Filter with `role=deliveryAgent&availability=available` to find agents
    free for assignment.
    """
    query = select(User)
    if role is not None:
        query = query.where(User.role == role)
    if availability is not None:
        query = query.where(User.availability == availability)
    query = query.order_by(User.created_at.desc(), User.id.desc())

    result = await db.execute(query)
    users = result.scalars().all()

    return UserListResponse(
        users=[UserResponse.model_validate(user) for user in users],
        total=len(users)
    )


@router.patch("/role/{email}", response_model=UserResponse)
async def update_user_role(
    email: str = Path(..., description="Email of the user to update"),
    update: RoleUpdate = ...,
    admin: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
    coordinator: LifecycleCoordinator = Depends(get_coordinator)
):
    """
    Change a user's role and/or delivery agent availability (admin-only).

    Admins cannot change their own role.
    """
    user = await _get_user_by_email(db, email)
    if not user:
        raise ResourceNotFoundError("User", email)

    if user.email == admin["email"] and update.role is not None and update.role != user.role:
        raise ValidationError("Cannot change your own role")

    previous_role = user.role
    previous_availability = user.availability

    user = await coordinator.change_role(user, role=update.role, availability=update.availability)

    await log_event(
        db=db,
        action=AuditAction.ROLE_CHANGED,
        actor_email=admin["email"],
        target=user.email,
        metadata={
            "previous_role": previous_role.value,
            "new_role": user.role.value,
            "previous_availability": previous_availability.value if previous_availability else None,
            "new_availability": user.availability.value if user.availability else None,
        }
    )

    return UserResponse.model_validate(user)


@router.get("/{email}/role", response_model=RoleResponse)
async def get_user_role(
    email: str = Path(..., description="Caller's own email"),
    identity: dict = Depends(get_identity),
    db: AsyncSession = Depends(get_db)
):
    """
    Look up the caller's own role.

    Returns 403 when asking about any other email.
    """
    enforce_self(email, identity)

    user = await _get_user_by_email(db, email)
    if not user:
        raise ResourceNotFoundError("User", email)

    return RoleResponse(role=user.role)
