#!/usr/bin/env python3
from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
sys.path.append(str(ROOT))

from sqlalchemy.exc import SQLAlchemyError  # noqa: E402

from rivr_api.core.config import get_database_url  # noqa: E402
from rivr_api.core.database import build_engine  # noqa: E402
from rivr_api.core.errors import RivrError  # noqa: E402
from rivr_api.core.logging_setup import configure_logging  # noqa: E402
from rivr_api.services.schema_provisioner import SchemaProvisioner  # noqa: E402

logger = logging.getLogger(__name__)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Seed demo customers into a provisioned tenant schema.")
    parser.add_argument("schema_name", help="Tenant schema, e.g. tenant_acme")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    try:
        args = parse_args(argv)
    except SystemExit as exc:
        return 0 if exc.code == 0 else 1

    configure_logging()
    engine = None
    try:
        engine = build_engine(get_database_url())
        rows = SchemaProvisioner(engine).seed_demo_rows(args.schema_name)
    except (RivrError, SQLAlchemyError) as exc:
        logger.error("migrate-initial-tenant-seed failed: %s", exc)
        print(f"Failed to seed tenant schema: {exc}", file=sys.stderr)
        return 1
    finally:
        if engine is not None:
            engine.dispose()

    print(f"Initial tenant seed done: schema={args.schema_name} rows={rows}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
