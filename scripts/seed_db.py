"""
Seed the system roles and, optionally, a first superadmin.

Usage:
    python scripts/seed_db.py
    python scripts/seed_db.py --superadmin-email root@example.com \
        --superadmin-username root --superadmin-password 'Secret123'
"""

import argparse
import asyncio

from sqlalchemy import or_, select

from app.config import settings
from app.core.database import db_manager
from app.core.security import hash_password
from app.features.roles.service import role_registry
from app.models.role import RoleName
from app.models.user import User, UserStatus


async def seed_data(email: str | None, username: str | None, password: str | None) -> None:
    print("Seeding database...")

    db_manager.init()
    if settings.is_sqlite:
        await db_manager.create_tables()

    try:
        async with db_manager.session_factory() as db:
            created = await role_registry.seed_default_roles(db)
            if created:
                print(f"Created roles: {', '.join(r.name for r in created)}")
            else:
                print("System roles already present")

            if not (email and username and password):
                return

            result = await db.execute(
                select(User).where(or_(User.email == email, User.username == username))
            )
            if result.first():
                print(f"User {email} / {username} already exists, skipping superadmin")
                return

            role = await role_registry.get_by_name(db, RoleName.SUPERADMIN)
            superadmin = User(
                email=email,
                username=username,
                full_name="Superadmin",
                hashed_password=hash_password(password),
                role=role,
                is_verified=True,
                status=UserStatus.ACTIVE,
            )
            db.add(superadmin)
            await db.commit()
            print(f"Created superadmin: {superadmin.email}")
    finally:
        await db_manager.close()

    print("Seeding complete")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Seed roles and a superadmin")
    parser.add_argument("--superadmin-email")
    parser.add_argument("--superadmin-username")
    parser.add_argument("--superadmin-password")
    args = parser.parse_args()

    asyncio.run(
        seed_data(args.superadmin_email, args.superadmin_username, args.superadmin_password)
    )
