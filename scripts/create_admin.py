"""Create an admin account, or promote an existing user and reset their password."""
from __future__ import annotations

import argparse
import sys
from pathlib import Path

from werkzeug.security import generate_password_hash

# Ensure the project root is on sys.path so ``bhakthas`` can be imported when the script is executed directly.
PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from bhakthas import create_app
from bhakthas.extensions import db
from bhakthas.models import AuthAccount, User


def create_admin(email: str, password: str, name: str) -> None:
    app = create_app()

    with app.app_context():
        email = email.strip().lower()
        user = User.query.filter_by(email=email).first()
        if user is None:
            user = User(name=name, email=email, role="admin")
            db.session.add(user)
            db.session.flush()
            print(f"Created new admin user: {email}")
        elif user.role != "admin":
            print(f"Promoting user '{email}' from '{user.role}' to 'admin'")
            user.role = "admin"

        account = db.session.get(AuthAccount, user.user_id)
        if account is None:
            account = AuthAccount(user_id=user.user_id)
            db.session.add(account)

        account.password_hash = generate_password_hash(password)
        db.session.commit()

        print(f"Admin '{email}' is ready.")


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Create or promote an admin account.")
    parser.add_argument("email", help="Admin email address")
    parser.add_argument("password", help="Plain-text password to hash and store")
    parser.add_argument("--name", default="Admin User", help="Display name for a new account")
    return parser.parse_args()


def main() -> None:
    args = parse_args()
    if len(args.password) < 8:
        sys.exit("Password must be at least 8 characters")
    create_admin(args.email, args.password, args.name)


if __name__ == "__main__":
    main()
