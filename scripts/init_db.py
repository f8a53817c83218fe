#!/usr/bin/env python3
"""
Database Setup Script

Creates missing tables and the bootstrap system admin from
SYSTEM_ADMIN_EMAIL / SYSTEM_ADMIN_PASSWORD.
Usage: python scripts/init_db.py
"""
import sys
sys.path.insert(0, '.')

from uniform.core.auth import hash_password
from uniform.core.config import get_settings
from uniform.db.database import get_db_session, init_db, typed_text


def create_system_admin(email: str, password: str) -> bool:
    """Insert the system admin unless the email already exists. Returns True if created."""
    with get_db_session() as db:
        existing = db.execute(
            typed_text("SELECT system_admin_id FROM system_admins WHERE LOWER(email) = LOWER(:email)"),
            {"email": email}
        ).fetchone()
        if existing:
            return False
        db.execute(
            typed_text("INSERT INTO system_admins (email, password_hash) VALUES (:email, :password_hash)"),
            {"email": email.lower(), "password_hash": hash_password(password)}
        )
    return True


def main():
    settings = get_settings()
    print("=" * 50)
    print("UNIFORM - DATABASE SETUP")
    print("=" * 50)

    print("\n[1] Creating tables...")
    init_db()
    print("    ✅ Schema ready")

    print("\n[2] System admin...")
    if not settings.system_admin_email or not settings.system_admin_password:
        print("    ⚠️  SYSTEM_ADMIN_EMAIL / SYSTEM_ADMIN_PASSWORD not set (skip)")
    elif create_system_admin(settings.system_admin_email, settings.system_admin_password):
        print(f"    ✅ Created {settings.system_admin_email}")
    else:
        print(f"    ✅ {settings.system_admin_email} already exists")

    print("\n" + "=" * 50)
    print("Setup complete!")
    print("=" * 50)


if __name__ == "__main__":
    main()
