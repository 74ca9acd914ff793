"""Create an admin account, or promote and unlock an existing one.

Usage:
    python -m backend.create_admin
"""

from __future__ import annotations

import getpass

from backend.app.core.config import settings
from backend.app.core.database import Database
from backend.app.core.security import get_password_hash, validate_password_strength
from backend.app.models.user import RoleEnum
from backend.app.services import lockout_store
from backend.app.services.accounts import get_user_by_email, normalize_email, register_user


def main() -> None:
    email = normalize_email(input("Email: "))
    if not email:
        print("Error: email cannot be empty.")
        return
    password = getpass.getpass("Password: ")
    pw_error = validate_password_strength(password)
    if pw_error:
        print(f"Error: {pw_error}")
        return

    database = Database(settings.DATABASE_URL)
    db = database.session()
    try:
        existing = get_user_by_email(db, email)
        if existing:
            # Clear counters first; the reset writes through the version check
            lockout_store.reset(db, existing)
            existing.hashed_password = get_password_hash(password)
            existing.role = RoleEnum.ADMIN
            existing.is_active = True
            db.commit()
            print("Existing account promoted to ADMIN, password reset and unlocked.")
            print(f"  ID:    {existing.id}")
            print(f"  Email: {existing.email}")
            return

        name = input("Name [Administrator]: ").strip() or "Administrator"
        user = register_user(
            db, name=name, email=email, password=password, role=RoleEnum.ADMIN
        )
        db.commit()
        print("Admin user created successfully!")
        print(f"  ID:    {user.id}")
        print(f"  Email: {user.email}")
    finally:
        db.close()
        database.dispose()


if __name__ == "__main__":
    main()
