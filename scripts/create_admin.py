import argparse
import getpass
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.append(str(ROOT))

from quizdesk.auth import create_user
from quizdesk.db import init_db
from quizdesk.errors import QuizDeskError
from quizdesk.models import Role


def main():
    parser = argparse.ArgumentParser(description="Create an admin account.")
    parser.add_argument("--email", required=True)
    parser.add_argument("--name", default="Administrator")
    parser.add_argument("--password", help="Prompted for when omitted.")
    args = parser.parse_args()

    password = args.password or getpass.getpass("Password: ")
    init_db()
    try:
        user = create_user(args.name, args.email, password, role=Role.ADMIN)
    except QuizDeskError as e:
        raise SystemExit(e.message)
    print(f"Admin {user.email} created ({user.id}).")


if __name__ == "__main__":
    main()
