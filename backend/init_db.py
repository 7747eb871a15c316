#!/usr/bin/env python3
# backend/init_db.py
"""
Database initialization script.

Creates every table directly from the models (no Alembic history) and,
with --demo-user, a first user to own portfolios.

This script can be run from any directory:
    python backend/init_db.py
    cd backend && python init_db.py --demo-user demo@example.com
"""
import argparse
import sys
from pathlib import Path

# Add the backend directory to Python path so 'tracker' package is importable
backend_dir = Path(__file__).parent
sys.path.insert(0, str(backend_dir))

from sqlalchemy import select

from tracker.database import check_database_health, engine, session_scope
from tracker.models import Base, User


def init_db(demo_user_email: str | None = None) -> None:
    """Create all database tables defined in models."""
    health = check_database_health()
    if health["status"] != "healthy":
        print(f"Database unavailable: {health.get('error')}")
        sys.exit(1)

    print(f"Creating database tables ({health['database']})...")
    Base.metadata.create_all(bind=engine)
    print("Tables created successfully!")

    if demo_user_email:
        with session_scope() as db:
            user = db.scalar(select(User).where(User.email == demo_user_email))
            if user is None:
                user = User(email=demo_user_email)
                db.add(user)
                db.flush()
            print(f"User {user.email} has id {user.id} (send it as X-User-Id)")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Create the tracker database schema")
    parser.add_argument("--demo-user", metavar="EMAIL", help="Also create a user with this email")
    args = parser.parse_args()
    init_db(args.demo_user)
