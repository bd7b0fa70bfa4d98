import argparse
import getpass
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from messagely.config import load_settings
from messagely.database import Database, resolve_database_path
from messagely.errors import DuplicateKeyError
from messagely.passwords import CredentialHasher
from messagely.users import UserDirectory


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Create a Messagely user")
    parser.add_argument("username", help="Unique username for login")
    parser.add_argument("first_name", help="First name")
    parser.add_argument("last_name", help="Last name")
    parser.add_argument("phone", help="Phone number")
    parser.add_argument(
        "--db",
        dest="db_path",
        default=None,
        help="Path to the SQLite database (defaults to the configured database path)",
    )
    return parser.parse_args()


def prompt_for_password() -> str:
    for _ in range(3):
        password = getpass.getpass("Password: ")
        confirm = getpass.getpass("Confirm password: ")
        if password != confirm:
            print("Passwords do not match. Try again.", file=sys.stderr)
            continue
        if len(password) < 8:
            print("Password must be at least 8 characters long.", file=sys.stderr)
            continue
        return password
    raise SystemExit("Failed to set password after three attempts.")


def main() -> int:
    args = parse_args()
    password = prompt_for_password()

    settings = load_settings()
    db_path = resolve_database_path(args.db_path) if args.db_path else settings.database_path

    database = Database(db_path)
    database.initialize()

    hasher = CredentialHasher(work_factor=settings.bcrypt_work_factor, scheme=settings.password_scheme)
    try:
        user = UserDirectory(database).create(
            args.username,
            hasher.hash(password),
            first_name=args.first_name,
            last_name=args.last_name,
            phone=args.phone,
        )
    except (DuplicateKeyError, ValueError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    print(f"Created user {user.username}: {user.first_name} {user.last_name} <{user.phone}>")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
