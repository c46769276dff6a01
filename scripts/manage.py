#!/usr/bin/env python3
"""
Maintenance commands for the Control Center database.

    ./scripts/manage.py init-db
    ./scripts/manage.py seed-templates
    OLD_ENCRYPTION_KEY=... NEW_ENCRYPTION_KEY=... ./scripts/manage.py rotate-key

Keys for rotate-key are read from the environment so they stay out of shell
history. After a successful rotation, set ENCRYPTION_KEY to the new key.
"""

import argparse
import os
import sys

from control_center.database import SessionLocal, init_db
from control_center.logging_config import setup_logging
from control_center.services.bot_service import reencrypt_bot_tokens
from control_center.services.encryption import TokenCipher, TokenCryptoError
from control_center.services.template_service import seed_default_templates


def cmd_init_db(args: argparse.Namespace) -> int:
    init_db()
    print("Tables created")
    return 0


def cmd_seed_templates(args: argparse.Namespace) -> int:
    init_db()
    db = SessionLocal()
    try:
        added = seed_default_templates(db)
    finally:
        db.close()
    print(f"Added {added} template(s)")
    return 0


def cmd_rotate_key(args: argparse.Namespace) -> int:
    old_key = os.environ.get("OLD_ENCRYPTION_KEY")
    new_key = os.environ.get("NEW_ENCRYPTION_KEY")
    if not old_key or not new_key:
        print("OLD_ENCRYPTION_KEY and NEW_ENCRYPTION_KEY must both be set", file=sys.stderr)
        return 2

    db = SessionLocal()
    try:
        count = reencrypt_bot_tokens(db, TokenCipher(old_key), TokenCipher(new_key))
    except TokenCryptoError as e:
        db.rollback()
        print(f"Rotation aborted, nothing was changed: {e}", file=sys.stderr)
        return 1
    finally:
        db.close()

    print(f"Re-encrypted {count} bot token(s)")
    return 0


def main() -> int:
    parser = argparse.ArgumentParser(description="Control Center maintenance")
    subcommands = parser.add_subparsers(dest="command", required=True)
    subcommands.add_parser("init-db", help="Create missing tables").set_defaults(func=cmd_init_db)
    subcommands.add_parser("seed-templates", help="Insert built-in command templates").set_defaults(
        func=cmd_seed_templates
    )
    subcommands.add_parser("rotate-key", help="Re-encrypt bot tokens under a new key").set_defaults(
        func=cmd_rotate_key
    )

    args = parser.parse_args()
    setup_logging()
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
