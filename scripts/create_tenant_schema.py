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
from sqlalchemy.orm import Session  # noqa: E402

from rivr_api.core.config import get_database_url  # noqa: E402
from rivr_api.core.database import build_engine  # noqa: E402
from rivr_api.core.errors import ConfigError, RivrError  # noqa: E402
from rivr_api.core.logging_setup import configure_logging  # noqa: E402
from rivr_api.models.business import Business  # noqa: E402
from rivr_api.services.schema_provisioner import SchemaProvisioner  # noqa: E402
from rivr_api.services.tenant_directory import TenantDirectory  # noqa: E402

logger = logging.getLogger(__name__)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Register a tenant and create its schema and tables.")
    parser.add_argument("subdomain", help="Tenant subdomain, e.g. acme")
    parser.add_argument("schema_name", help="Database schema for the tenant, e.g. tenant_acme")
    parser.add_argument("--business-id", type=int, help="Attach the tenant to an existing business")
    parser.add_argument("--business-name", help="Name for the business row created for the tenant")
    parser.add_argument("--seed", action="store_true", help="Insert the demo customers after provisioning")
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
        if not inspect(engine).has_table(Business.__tablename__):
            raise ConfigError("Table businesses not found. Run the platform migrations first.")

        directory = TenantDirectory(cache_ttl_seconds=0)
        with Session(engine) as db:
            record = directory.find_registration(
                db, args.subdomain, args.schema_name, business_id=args.business_id
            )
            resumed = record is not None
            if resumed:
                logger.info(
                    "Resuming provisioning for registered tenant subdomain=%s schema=%s",
                    record.subdomain,
                    record.schema_name,
                )
            else:
                record = directory.register(
                    db,
                    args.subdomain,
                    args.schema_name,
                    business_id=args.business_id,
                    business_name=args.business_name,
                )

        provisioner = SchemaProvisioner(engine)
        applied = provisioner.ensure_schema(record.schema_name)
        seeded = 0
        # Demo rows go in once: a resumed run seeds only a schema that has none yet.
        if args.seed and not (resumed and provisioner.customer_count(record.schema_name)):
            seeded = provisioner.seed_demo_rows(record.schema_name)
    except (RivrError, SQLAlchemyError) as exc:
        logger.error("create-tenant-schema failed: %s", exc)
        print(f"Failed to create tenant schema: {exc}", file=sys.stderr)
        return 1
    finally:
        if engine is not None:
            engine.dispose()

    print(
        f"Tenant ready: subdomain={record.subdomain} schema={record.schema_name} "
        f"business_id={record.business_id} objects={','.join(applied)} seeded={seeded}"
    )
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
