"""
Create a user with a password (e.g. the first admin). Run from project root:
  python -m dynasty_auth.scripts.create_user EMAIL PASSWORD FIRST LAST [role]
Example:
  python -m dynasty_auth.scripts.create_user ops@example.com 'S3cure-pass' Ops Admin ADMIN
"""
import argparse
import sys

from dynasty_auth.core.clock import utcnow
from dynasty_auth.core.config import get_settings
from dynasty_auth.core.database import SessionLocal
from dynasty_auth.core.security import (
    EMAIL_MAX_LEN,
    PASSWORD_MAX_LEN,
    PASSWORD_MIN_LEN,
    PasswordHasher,
)
from dynasty_auth.models import UserRole, UserStatus
from dynasty_auth.repositories.auth import AuthRepository


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        description="Create an active, email-verified user with a password."
    )
    parser.add_argument("email", help=f"Email (max {EMAIL_MAX_LEN} chars)")
    parser.add_argument("password", help=f"Password ({PASSWORD_MIN_LEN}-{PASSWORD_MAX_LEN} chars)")
    parser.add_argument("first_name")
    parser.add_argument("last_name")
    parser.add_argument(
        "role",
        nargs="?",
        default=UserRole.TRADER.value,
        choices=[r.value for r in UserRole],
    )
    args = parser.parse_args(argv)

    email = args.email.strip()
    if not email or "@" not in email or len(email) > EMAIL_MAX_LEN:
        print("Invalid email.", file=sys.stderr)
        return 1
    if not (PASSWORD_MIN_LEN <= len(args.password) <= PASSWORD_MAX_LEN):
        print(
            f"Password must be {PASSWORD_MIN_LEN}-{PASSWORD_MAX_LEN} characters.",
            file=sys.stderr,
        )
        return 1

    hasher = PasswordHasher(rounds=get_settings().BCRYPT_ROUNDS)
    db = SessionLocal()
    try:
        repo = AuthRepository(db)
        if repo.email_exists(email):
            print(f"User '{email}' already exists.", file=sys.stderr)
            return 1
        user = repo.create_user_with_password(
            email=email,
            first_name=args.first_name.strip(),
            last_name=args.last_name.strip(),
            password_hash=hasher.hash_password(args.password),
            role=UserRole(args.role),
            status=UserStatus.ACTIVE,
            email_verified=True,
            email_verified_at=utcnow(),
        )
        repo.commit()
        print(f"Created user '{user.email}' with role '{args.role}'.")
        return 0
    finally:
        db.close()


if __name__ == "__main__":
    sys.exit(main())
