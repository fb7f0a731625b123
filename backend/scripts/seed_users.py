#!/usr/bin/env python
"""Seed script to create one account per role.

Run once during initial setup (after migrations). Existing accounts are
left untouched.

Usage:
    python backend/scripts/seed_users.py

Environment Variables:
    DATABASE_URL: Database connection string
    PASSWORD_PEPPER: Password hashing pepper (required)
    SEED_ADMIN_EMAIL / SEED_ADMIN_PASSWORD (default: admin@securevault.example.com / AdminP@ss123)
    SEED_OFFICER_EMAIL / SEED_OFFICER_PASSWORD (default: officer@securevault.example.com / OfficerP@ss123)
    SEED_USER_EMAIL / SEED_USER_PASSWORD (default: user@securevault.example.com / UserP@ss123)
"""

import os
import sys

from sqlalchemy.exc import SQLAlchemyError

from securevault.auth.password import hash_password, validate_password_strength
from securevault.auth.roles import UserRole
from securevault.database import SessionLocal
from securevault.models.user import User


SEED_ACCOUNTS = [
    (UserRole.ADMIN, "SEED_ADMIN", "admin@securevault.example.com", "AdminP@ss123", "Admin", "SecureVault"),
    (UserRole.BANK_OFFICER, "SEED_OFFICER", "officer@securevault.example.com", "OfficerP@ss123", "Bank", "Officer"),
    (UserRole.USER, "SEED_USER", "user@securevault.example.com", "UserP@ss123", "Test", "User"),
]


def main():
    """Create the seed accounts."""
    session = SessionLocal()

    try:
        for role, env_prefix, default_email, default_password, first_name, last_name in SEED_ACCOUNTS:
            email = os.getenv(f"{env_prefix}_EMAIL", default_email).lower()
            password = os.getenv(f"{env_prefix}_PASSWORD", default_password)

            is_valid, error_msg = validate_password_strength(password)
            if not is_valid:
                print(f"ERROR: Password for {email} does not meet strength requirements: {error_msg}")
                sys.exit(1)

            if session.query(User).filter(User.email == email).first():
                print(f"SKIP: {email} already exists")
                continue

            user = User(
                email=email,
                password_hash=hash_password(password),
                first_name=first_name,
                last_name=last_name,
                role=role.value,
                is_active=True,
            )
            session.add(user)
            session.flush()
            print(f"CREATED: {role.value:<12} {email} ({user.id})")

        session.commit()
        print("SUCCESS: Seed accounts ready")

    except (SQLAlchemyError, ValueError) as e:
        session.rollback()
        print(f"ERROR: Failed to seed users: {e}")
        sys.exit(1)

    finally:
        session.close()


if __name__ == "__main__":
    main()
