#!/usr/bin/env python3
from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
sys.path.append(str(ROOT))

from sqlalchemy import inspect  # noqa: E402
from sqlalchemy.exc import SQLAlchemyError  # noqa: E402

from rivr_api.core.config import get_database_url  # noqa: E402
from rivr_api.core.database import build_engine  # noqa: E402
from rivr_api.core.errors import ConfigError, RivrError  # noqa: E402
from rivr_api.core.logging_setup import configure_logging  # noqa: E402
from rivr_api.models.business import Business  # noqa: E402
from rivr_api.models.business_settings import BusinessSettings  # noqa: E402

logger = logging.getLogger(__name__)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Create the business_settings table and its unique business_id index if missing."
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
        if not inspect(engine).has_table(Business.__tablename__):
            raise ConfigError("Table businesses not found. Run the platform migrations first.")

        table = BusinessSettings.__table__
        table.create(bind=engine, checkfirst=True)
        for index in table.indexes:
            index.create(bind=engine, checkfirst=True)

        columns = [column["name"] for column in inspect(engine).get_columns(table.name)]
    except (RivrError, SQLAlchemyError) as exc:
        logger.error("migrate-business-settings failed: %s", exc)
        print(f"Failed to create business_settings: {exc}", file=sys.stderr)
        return 1
    finally:
        if engine is not None:
            engine.dispose()

    print(f"business_settings ready: columns={','.join(columns)}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
