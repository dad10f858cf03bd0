"""
Create the database tables and seed default categories before running the app.
Usage: python init_db.py [--admin-email EMAIL --admin-password PASSWORD]
"""

from __future__ import annotations

import argparse
from typing import Optional, Sequence

from dotenv import load_dotenv

load_dotenv()

from database import DATABASE_URL, ROLE_ADMIN, create_user_account, get_user_by_email, init_db  # noqa: E402
from security import hash_password  # noqa: E402


def create_admin(email: str, password: str, name: str = "Administrator") -> bool:
    """Create an admin account unless the email is already registered."""

    if get_user_by_email(email):
        return False
    create_user_account(name, email, hash_password(password), role=ROLE_ADMIN)
    return True


def main(argv: Optional[Sequence[str]] = None) -> None:
    parser = argparse.ArgumentParser(description=__doc__.strip().splitlines()[0])
    parser.add_argument("--admin-email", help="create an admin account with this email")
    parser.add_argument("--admin-password", help="password for the admin account")
    args = parser.parse_args(argv)

    init_db()
    print(f"Database ready at {DATABASE_URL}")

    if args.admin_email:
        if not args.admin_password:
            parser.error("--admin-password is required with --admin-email")
        if create_admin(args.admin_email, args.admin_password):
            print(f"Admin account created for {args.admin_email.lower()}")
        else:
            print(f"{args.admin_email.lower()} is already registered")


if __name__ == "__main__":
    main()
