from __future__ import annotations

import logging

from sqlalchemy import func, inspect, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.schema import CreateSchema

from rivr_api.core.errors import ProvisioningError
from rivr_api.services.tenant_db import attach_schema, is_sqlite, sqlite_schema_exists, tenant_connection
from rivr_api.tenancy.template import DEMO_CUSTOMERS, TEMPLATE_OBJECTS, TEMPLATE_VERSION, customers
from rivr_api.utils.identifiers import validate_schema_name

logger = logging.getLogger(__name__)
PROVISION_PREFIX = "[PROVISION]"


class SchemaProvisioner:
    """Create a tenant's schema and template tables, idempotently.

    Each object is created by its own ``IF NOT EXISTS`` statement on its own
    connection; there is no wrapping transaction. A run that dies halfway
    leaves a partial schema that the next run completes, and two concurrent
    first-time runs for the same schema both finish with one copy of each
    table.
    """

    def __init__(self, engine: Engine) -> None:
        self.engine = engine

    def ensure_schema(self, schema_name: str) -> list[str]:
        schema_name = validate_schema_name(schema_name)
        logger.info("%s ensure start schema=%s template_version=%s", PROVISION_PREFIX, schema_name, TEMPLATE_VERSION)

        applied = [self._ensure_namespace(schema_name)]
        for template_object in TEMPLATE_OBJECTS:
            self._apply(schema_name, template_object.name, template_object.build())
            applied.append(template_object.name)

        logger.info("%s ensure done schema=%s objects=%s", PROVISION_PREFIX, schema_name, ",".join(applied))
        return applied

    def seed_demo_rows(self, schema_name: str) -> int:
        """Insert the fixed demo customers. Not idempotent: each call adds rows."""
        schema_name = validate_schema_name(schema_name)
        try:
            with tenant_connection(self.engine, schema_name) as connection:
                connection.execute(customers.insert(), [dict(row) for row in DEMO_CUSTOMERS])
        except SQLAlchemyError as exc:
            logger.error(
                "%s seed failed schema=%s",
                PROVISION_PREFIX,
                schema_name,
                extra={"schema": schema_name, "object": "customers"},
            )
            raise ProvisioningError(schema_name, "customers") from exc

        logger.info("%s seeded schema=%s rows=%s", PROVISION_PREFIX, schema_name, len(DEMO_CUSTOMERS))
        return len(DEMO_CUSTOMERS)

    def customer_count(self, schema_name: str) -> int:
        schema_name = validate_schema_name(schema_name)
        with tenant_connection(self.engine, schema_name) as connection:
            return int(connection.execute(select(func.count()).select_from(customers)).scalar_one())

    def schema_exists(self, schema_name: str) -> bool:
        schema_name = validate_schema_name(schema_name)
        if is_sqlite(self.engine):
            return sqlite_schema_exists(self.engine, schema_name)
        with self.engine.connect() as connection:
            return schema_name in inspect(connection).get_schema_names()

    def list_tables(self, schema_name: str) -> list[str]:
        schema_name = validate_schema_name(schema_name)
        with self.engine.connect() as connection:
            if is_sqlite(connection):
                attach_schema(connection, schema_name)
            return sorted(inspect(connection).get_table_names(schema=schema_name))

    def _ensure_namespace(self, schema_name: str) -> str:
        # On SQLite the namespace is created by ATTACH inside _apply.
        if not is_sqlite(self.engine):
            self._apply(schema_name, "schema", CreateSchema(schema_name, if_not_exists=True))
        return "schema"

    def _apply(self, schema_name: str, object_name: str, statement) -> None:
        try:
            with self.engine.connect() as connection:
                if is_sqlite(connection):
                    attach_schema(connection, schema_name)
                    connection.commit()
                scoped = connection.execution_options(schema_translate_map={None: schema_name})
                with scoped.begin():
                    scoped.execute(statement)
        except SQLAlchemyError as exc:
            # IF NOT EXISTS can still lose a race on PostgreSQL catalog rows; the winner's object counts.
            if self._object_exists(schema_name, object_name):
                logger.info(
                    "%s object created concurrently schema=%s object=%s",
                    PROVISION_PREFIX,
                    schema_name,
                    object_name,
                )
                return
            logger.error(
                "%s DDL failed schema=%s object=%s",
                PROVISION_PREFIX,
                schema_name,
                object_name,
                extra={"schema": schema_name, "object": object_name},
            )
            raise ProvisioningError(schema_name, object_name) from exc

    def _object_exists(self, schema_name: str, object_name: str) -> bool:
        try:
            if object_name == "schema":
                return self.schema_exists(schema_name)
            with self.engine.connect() as connection:
                if is_sqlite(connection):
                    attach_schema(connection, schema_name)
                return inspect(connection).has_table(object_name, schema=schema_name)
        except SQLAlchemyError:
            return False
