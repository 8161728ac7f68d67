#!/usr/bin/env python3
"""
Create or promote an administrator account in the catalog database.

The API has no route that grants administrator rights to a fresh
installation, so the first administrator is created with this script.
If the email is already registered the existing account is promoted and,
when a password is given, its password is replaced.

Usage:
    DATABASE_URL=mongodb://localhost:27017 python create_admin.py --email admin@example.com \
        --firstname Admin --lastname Root

If --password is omitted, you will be prompted to enter it securely.
"""

import argparse
import asyncio
import getpass
import sys

from catalog_api.app.core.config import settings
from catalog_api.app.core.db import connect, init_db
from catalog_api.app.core.logging_config import setup_logging
from catalog_api.app.services.user_service import UserService


async def create_admin(email: str, firstname: str, lastname: str, password: str) -> int:
    database = connect(settings)
    try:
        await init_db(database)
        users = UserService(database, settings)
        result = await users.register({
            "firstname": firstname,
            "lastname": lastname,
            "email": email,
            "password": password,
        })
        if result.ok:
            user_id = result.data.id
        else:
            existing = await users.crud.find_one({"email": email.strip().lower()})
            if existing is None:
                print(f"[!] {result.message}", file=sys.stderr)
                return 1
            user_id = str(existing["_id"])
        promoted = await users.update_user(user_id, {"is_admin": True, "password": password})
        if not promoted.ok:
            print(f"[!] {promoted.message}", file=sys.stderr)
            return 2
        print(f"[+] {promoted.data.email} is an administrator (id {promoted.data.id})")
        return 0
    finally:
        await database.close()


def main() -> None:
    ap = argparse.ArgumentParser(description="Create or promote a catalog administrator.")
    ap.add_argument("--email", required=True, help="Administrator email")
    ap.add_argument("--firstname", default="Admin")
    ap.add_argument("--lastname", default="Admin")
    ap.add_argument("--password", help="Password. If omitted, you'll be prompted securely.")
    args = ap.parse_args()

    password = args.password or getpass.getpass("Enter password: ")
    if not password:
        print("[!] Empty password is not allowed.", file=sys.stderr)
        sys.exit(1)

    setup_logging(settings.log_level)
    sys.exit(asyncio.run(create_admin(args.email, args.firstname, args.lastname, password)))


if __name__ == "__main__":
    main()
