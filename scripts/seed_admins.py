#!/usr/bin/env python3
from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
sys.path.append(str(ROOT))

from sqlalchemy.exc import SQLAlchemyError  # noqa: E402
from sqlalchemy.orm import Session  # noqa: E402

from rivr_api.core.config import get_admin_seed_password, get_database_url  # noqa: E402
from rivr_api.core.database import build_engine  # noqa: E402
from rivr_api.core.errors import RivrError  # noqa: E402
from rivr_api.core.logging_setup import configure_logging  # noqa: E402
from rivr_api.services.admin_allowlist import (  # noqa: E402
    DEFAULT_ADMIN_ALLOWLIST,
    ensure_admin_table,
    sync_admin_allowlist,
)

logger = logging.getLogger(__name__)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Make the platform admin accounts match the configured allowlist exactly."
    )
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    try:
        parse_args(argv)
    except SystemExit as exc:
        return 0 if exc.code == 0 else 1

    configure_logging()
    engine = None
    try:
        engine = build_engine(get_database_url())
        ensure_admin_table(engine)
        with Session(engine) as db:
            result = sync_admin_allowlist(db, DEFAULT_ADMIN_ALLOWLIST, password=get_admin_seed_password())
    except (RivrError, SQLAlchemyError) as exc:
        logger.error("seed-admins failed: %s", exc)
        print(f"Admin seeding failed: {exc}", file=sys.stderr)
        return 1
    finally:
        if engine is not None:
            engine.dispose()

    print(f"Removed: {', '.join(result.removed) or '-'}")
    for identity in DEFAULT_ADMIN_ALLOWLIST:
        print(f"Ensured admin: {identity.email}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
