"""
Create the database tables and an initial administrator account.

Usage:
    python scripts/init_admin.py --email admin@mairie.sn --password secret --name "Admin Principal"

Values fall back to ADMIN_EMAIL / ADMIN_PASSWORD / ADMIN_NAME.
"""
import argparse
import os
import sys

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from civil_registry.core.entities.status import AccountStatus, Role
from civil_registry.core.security import hash_password
from civil_registry.infrastructure.auth.session_tokens import issue_token
from civil_registry.infrastructure.db.database import get_db, init_db
from civil_registry.infrastructure.db.repository import RegistryStore


def main():
    parser = argparse.ArgumentParser(description="Create the first administrator")
    parser.add_argument("--email", default=os.getenv("ADMIN_EMAIL"))
    parser.add_argument("--password", default=os.getenv("ADMIN_PASSWORD"))
    parser.add_argument("--name", default=os.getenv("ADMIN_NAME", "Administrateur"))
    parser.add_argument("--print-token", action="store_true", help="Print a session token for the account")
    args = parser.parse_args()

    if not args.email or not args.password:
        parser.error("--email and --password are required (or ADMIN_EMAIL / ADMIN_PASSWORD)")

    init_db()
    email = args.email.strip().lower()
    with get_db() as db:
        store = RegistryStore(db)
        admin = store.users.get_by_email(email)
        if admin is not None:
            print(f"⚠️  {email} already exists ({admin.role}), nothing created")
        else:
            admin = store.users.add(
                name=args.name,
                email=email,
                hashed_password=hash_password(args.password),
                role=Role.ADMIN.value,
                status=AccountStatus.ACTIVE.value,
            )
            print(f"✅ Admin created: {admin.id} <{email}>")
        admin_id, admin_role = admin.id, admin.role

    if args.print_token:
        print(issue_token(admin_id, admin_role, email=email))


if __name__ == "__main__":
    main()
