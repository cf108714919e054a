"""
Database seeding script for the first admin.

Every account registers as a customer; somebody has to be able to grant
roles. Run this once after the database is reachable:

    python -m backend.seed_users admin@example.com "Admin Name"
"""

import asyncio
import sys

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.core.config import settings
from backend.app.core.exceptions import ValidationError
from backend.app.db.session import Base, create_engine, create_session_factory
from backend.app.models.user import User
from backend.app.models.enums import UserRole
from backend.app.services.agent_directory import AgentDirectory


async def promote_to_admin(db: AsyncSession, email: str, name: str = None) -> str:
    """
    Create (or promote) `email` as an ADMIN user.

    Idempotent: an existing admin is left untouched.

    Returns:
        "exists", "promoted" or "created"

    Raises:
        ValidationError: if `email` is a delivery agent still holding open parcels
    """
    email = email.lower()

    result = await db.execute(select(User).where(User.email == email))
    user = result.scalar_one_or_none()

    if user and user.role == UserRole.ADMIN:
        return "exists"

    if user:
        if user.role == UserRole.DELIVERY_AGENT:
            open_count = await AgentDirectory(db).count_open_assignments(email)
            if open_count:
                raise ValidationError(
                    "Agent still has open assignments",
                    details={"open_assignments": open_count},
                )
        user.role = UserRole.ADMIN
        user.availability = None
        outcome = "promoted"
    else:
        db.add(User(email=email, name=name, role=UserRole.ADMIN))
        outcome = "created"

    await db.commit()
    return outcome


async def seed_admin(email: str, name: str = None):
    engine = create_engine(settings)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    session_factory = create_session_factory(engine)
    try:
        async with session_factory() as db:
            print("🌱 Starting admin seeding...")
            try:
                outcome = await promote_to_admin(db, email, name)
            except ValidationError as exc:
                print(f"❌ Cannot promote {email}: {exc.message} {exc.details}")
                return

            if outcome == "exists":
                print(f"ℹ️  {email} is already an admin, skipping seeding")
                return
            print(f"✅ {outcome.capitalize()} ADMIN user {email}")
            print("\n🎉 Admin seeding completed successfully!")
    finally:
        await engine.dispose()


if __name__ == "__main__":
    if len(sys.argv) < 2:
        print("usage: python -m backend.seed_users <email> [name]")
        sys.exit(1)
    asyncio.run(seed_admin(sys.argv[1], sys.argv[2] if len(sys.argv) > 2 else None))
