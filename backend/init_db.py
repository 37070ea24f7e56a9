"""
Initialize database and optionally issue a development owner token.

Run this script once to set up the database:
    python init_db.py
    python init_db.py --token alice
"""

import argparse

from shortlinks.core.security import create_access_token
from shortlinks.database import engine, Base
from shortlinks.models import Link, LinkKey, Click, UniqueVisitor  # noqa: F401 (registers tables)


def init_database():
    """Create all database tables"""
    print("Creating database tables...")
    Base.metadata.create_all(bind=engine)
    print("Database tables created successfully!")


def issue_token(owner_id: str):
    """Print a bearer token for the given owner id"""
    token = create_access_token(owner_id)
    print("\n" + "="*50)
    print(f"Owner: {owner_id}")
    print(f"Token: {token}")
    print("="*50)


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Short links database setup")
    parser.add_argument("--token", metavar="OWNER_ID", help="also print a bearer token for this owner")
    args = parser.parse_args()

    print("="*50)
    print("Short Links - Database Initialization")
    print("="*50)

    init_database()
    if args.token:
        issue_token(args.token)

    print("\nDatabase initialization complete!")
    print("\nYou can now start the server with:")
    print("    uvicorn shortlinks.main:app --reload")
