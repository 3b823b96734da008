"""
Create a user (e.g. first admin, since roles can only be changed by an admin). Run from project root:
  python -m app.scripts.create_user NAME EMAIL PASSWORD [role]
Example:
  python -m app.scripts.create_user "Site Admin" admin@example.com your-secure-password admin
"""
import argparse
import logging
import sys

from email_validator import EmailNotValidError, validate_email

from app.core.database import SessionLocal
from app.core.exceptions import Conflict
from app.core.security import NAME_MAX_LEN, PASSWORD_MAX_LEN, PASSWORD_MIN_LEN, ROLE_USER, ROLES
from app.services.users import change_role, register_user

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
    datefmt="%Y-%m-%dT%H:%M:%SZ",
)


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Create a Tech-E user without going through the API.")
    parser.add_argument("name", help=f"Display name (1-{NAME_MAX_LEN} chars)")
    parser.add_argument("email", help="Login email")
    parser.add_argument("password", help=f"Password ({PASSWORD_MIN_LEN}-{PASSWORD_MAX_LEN} chars)")
    parser.add_argument("role", nargs="?", default=ROLE_USER, choices=list(ROLES))
    args = parser.parse_args(argv)

    name = args.name.strip()
    if not name or len(name) > NAME_MAX_LEN:
        print("Invalid name length.", file=sys.stderr)
        return 1
    try:
        email = validate_email(args.email.strip(), check_deliverability=False).normalized
    except EmailNotValidError as e:
        print(f"Invalid email address: {e}", file=sys.stderr)
        return 1
    if len(args.password) < PASSWORD_MIN_LEN or len(args.password) > PASSWORD_MAX_LEN:
        print(f"Password must be {PASSWORD_MIN_LEN}-{PASSWORD_MAX_LEN} characters.", file=sys.stderr)
        return 1

    db = SessionLocal()
    try:
        try:
            user = register_user(db, name, email, args.password)
        except Conflict:
            print(f"User '{email}' already exists.", file=sys.stderr)
            return 1
        if args.role != ROLE_USER:
            change_role(db, user.id, args.role)
        print(f"Created user '{user.email}' with role '{args.role}'.")
        return 0
    finally:
        db.close()


if __name__ == "__main__":
    sys.exit(main())
