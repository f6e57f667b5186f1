#!/usr/bin/env python3
"""
Create an admin account.

Run: python scripts/create_admin.py <username> <password> [--role superadmin]

Exit codes:
  0 - Admin created
  1 - Invalid arguments or username already taken
  2 - Database error
"""

import argparse
import asyncio
import sys
from pathlib import Path

from sqlalchemy import insert, select
from sqlalchemy.exc import SQLAlchemyError

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from app.config import settings  # noqa: E402
from app.database import Database  # noqa: E402
from app.models import Admin  # noqa: E402
from app.services.auth import (  # noqa: E402
    ROLE_ADMIN,
    ROLE_SUPERADMIN,
    check_password_length,
    hash_password_async,
)

admins = Admin.__table__


async def create_admin(database: Database, username: str, password: str, role: str) -> dict:
    """
    Insert one admin row with a bcrypt-hashed password.

    Raises:
        ValueError: If the username is already taken
    """
    username = username.strip().lower()
    existing = await database.query_with_retry(
        select(admins.c.id).where(admins.c.username == username),
        operation_name="find_admin",
    )
    if existing.first() is not None:
        raise ValueError(f"Admin '{username}' already exists")

    result = await database.query_with_retry(
        insert(admins)
        .values(username=username, password=await hash_password_async(password), role=role)
        .returning(admins.c.id, admins.c.username, admins.c.role, admins.c.created_at),
        operation_name="create_admin",
    )
    return result.first()


async def main(args: argparse.Namespace) -> int:
    try:
        check_password_length(args.password)
    except ValueError as e:
        print(f"❌ {e}")
        return 1

    database = Database.from_settings(settings)
    try:
        admin = await create_admin(database, args.username, args.password, args.role)
    except ValueError as e:
        print(f"❌ Error: {e}")
        return 1
    except SQLAlchemyError as e:
        print(f"❌ Database error: {e}")
        return 2
    finally:
        await database.dispose()

    print("✅ Admin user created successfully!")
    print(f"   Username: {admin['username']}")
    print(f"   Role: {admin['role']}")
    print(f"   ID: {admin['id']}")
    print(f"   Created: {admin['created_at']}")
    return 0


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Create an admin account")
    parser.add_argument("username")
    parser.add_argument("password")
    parser.add_argument(
        "--role",
        choices=[ROLE_ADMIN, ROLE_SUPERADMIN],
        default=ROLE_ADMIN,
        help="Account role (default: admin)",
    )
    if not settings.database_url:
        print("❌ DATABASE_URL is not set")
        sys.exit(2)
    sys.exit(asyncio.run(main(parser.parse_args())))
