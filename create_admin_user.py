"""
Utility script to create an admin user for the company import API.
Run this script to create the first user account.

Usage:
    python create_admin_user.py
    python create_admin_user.py --test  # creates test@test.com / 12345678
"""
from company_import.db.session import get_engine
from company_import.core.security import create_user, init_auth_tables
from sqlalchemy.orm import Session
import argparse
import getpass


def parse_args():
    parser = argparse.ArgumentParser(
        description="Create an admin user who can manage every import."
    )
    parser.add_argument(
        "--test",
        action="store_true",
        help="Create a default test user (test@test.com / 12345678) without prompts.",
    )
    return parser.parse_args()


def main():
    args = parse_args()

    print("=" * 60)
    print("Company Import - Create Admin User")
    print("=" * 60)
    print()

    try:
        init_auth_tables()
        print("✓ users table ready")
    except Exception as e:
        print(f"Warning: {e}")

    if args.test:
        email = "test@test.com"
        full_name = "Test User"
        password = "12345678"
        print("Creating default test user: test@test.com / 12345678")
    else:
        email = input("Enter email address: ").strip()
        if not email:
            print("Error: Email is required")
            return

        full_name = input("Enter full name (optional): ").strip() or None

        password = getpass.getpass("Enter password: ")
        password_confirm = getpass.getpass("Confirm password: ")

        if password != password_confirm:
            print("Error: Passwords do not match")
            return

    engine = get_engine()
    with Session(engine) as db:
        try:
            user = create_user(
                db=db,
                email=email,
                password=password,
                full_name=full_name,
                role="admin"
            )
        except ValueError as e:
            print(f"Error creating user: {e}")
            return

        print()
        print("✓ Admin user created")
        print(f"Email: {user.email}")
        print(f"Name: {user.full_name or 'N/A'}")
        print()
        print("Request a token with POST /auth/token to call the import endpoints.")


if __name__ == "__main__":
    main()
