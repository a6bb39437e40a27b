"""Create the database schema and the default administrator account."""
from __future__ import annotations

import argparse
import logging
import sys

from sqlalchemy.exc import SQLAlchemyError

from deepbug.core.settings import settings
from deepbug.db.session import SessionLocal, create_tables
from deepbug.services.auth import ensure_default_admin

logger = logging.getLogger(__name__)


def main() -> None:
    parser = argparse.ArgumentParser(description="Ensure the default administrator exists")
    parser.add_argument(
        "--create-tables",
        action="store_true",
        help="Create any missing tables before seeding (local runs without alembic).",
    )
    parser.add_argument("--email", default=None, help="Override DEFAULT_ADMIN_EMAIL")
    parser.add_argument("--name", default=None, help="Override DEFAULT_ADMIN_NAME")
    args = parser.parse_args()

    logging.basicConfig(level=settings.log_level.upper())
    overrides = {
        key: value
        for key, value in {
            "default_admin_email": args.email,
            "default_admin_name": args.name,
        }.items()
        if value
    }
    config = settings.model_copy(update=overrides)

    try:
        if args.create_tables:
            create_tables()
        with SessionLocal() as db:
            admin = ensure_default_admin(db, config)
    except SQLAlchemyError as exc:
        print(f"[ensure_admin] ERROR: {exc}", file=sys.stderr)
        sys.exit(1)

    if admin is None:
        print("[ensure_admin] administrator already present or no password configured")
    else:
        print(f"[ensure_admin] created administrator {admin.email}")


if __name__ == "__main__":
    main()
