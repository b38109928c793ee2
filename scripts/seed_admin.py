"""
Seed Admin User

Creates the first back-office admin account. Run once after migrating.

Usage:
    ADMIN_EMAIL=head@school.org ADMIN_PASSWORD=... python scripts/seed_admin.py
    python scripts/seed_admin.py --email head@school.org --name "Head Teacher"

The password is read from ADMIN_PASSWORD, or prompted for when unset.
"""

import argparse
import asyncio
import getpass
import os
import sys

from backoffice.core.config import settings
from backoffice.core.database import build_engine, build_session_maker
from backoffice.core.security import hash_password
from backoffice.modules.users import StaffRole, UserRepository


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Create a back-office admin account")
    parser.add_argument("--email", default=os.getenv("ADMIN_EMAIL"))
    parser.add_argument("--name", default=os.getenv("ADMIN_NAME", "School Administrator"))
    parser.add_argument(
        "--role",
        choices=[role.value for role in StaffRole],
        default=StaffRole.ADMIN.value,
    )
    return parser.parse_args()


async def seed_admin(email: str, password: str, full_name: str, role: StaffRole) -> None:
    """Create the account if no account with that email exists."""
    engine = build_engine(settings.database_url)
    session_maker = build_session_maker(engine)

    try:
        async with session_maker() as db:
            existing = await UserRepository.get_by_email(db, email)
            if existing:
                print(f"Account already exists: {existing.email}")
                print(f"  ID: {existing.id}")
                print(f"  Role: {existing.role.value}")
                return

            account = await UserRepository.create(
                db,
                email=email,
                password_hash=hash_password(password),
                full_name=full_name,
                role=role,
            )
            await db.commit()

            print("Account created successfully!")
            print(f"  Email: {account.email}")
            print(f"  Name: {account.full_name}")
            print(f"  ID: {account.id}")
            print(f"  Role: {account.role.value}")
    finally:
        await engine.dispose()


def main() -> int:
    args = parse_args()
    if not args.email:
        print("An email is required (--email or ADMIN_EMAIL)", file=sys.stderr)
        return 1

    password = os.getenv("ADMIN_PASSWORD") or getpass.getpass("Password: ")
    if len(password) < 8:
        print("Password must be at least 8 characters", file=sys.stderr)
        return 1

    asyncio.run(seed_admin(args.email, password, args.name, StaffRole(args.role)))
    return 0


if __name__ == "__main__":
    sys.exit(main())
