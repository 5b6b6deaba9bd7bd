"""Tenant-scoped connections.

Callers pass the tenant's schema explicitly; there is no ambient "current
tenant". On PostgreSQL a schema is a namespace inside the shared database.
On SQLite (dev and tests) it is an attached database, named after the schema,
that must be attached on every DBAPI connection before use.
"""
from __future__ import annotations

from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

from sqlalchemy import text
from sqlalchemy.engine import Connection, Engine

from rivr_api.utils.identifiers import validate_schema_name


def is_sqlite(bind: Engine | Connection) -> bool:
    return bind.dialect.name == "sqlite"


def sqlite_schema_path(engine: Engine, schema_name: str) -> str:
    database = engine.url.database
    if not database or database == ":memory:":
        return ":memory:"
    main_path = Path(database)
    return str(main_path.with_name(f"{main_path.stem}__{schema_name}{main_path.suffix or '.db'}"))


def attached_schemas(connection: Connection) -> set[str]:
    rows = connection.exec_driver_sql("PRAGMA database_list").fetchall()
    return {row[1] for row in rows}


def attach_schema(connection: Connection, schema_name: str) -> bool:
    """Attach the SQLite database backing ``schema_name``; returns True when newly attached."""
    schema_name = validate_schema_name(schema_name)
    if schema_name in attached_schemas(connection):
        return False
    path = sqlite_schema_path(connection.engine, schema_name)
    connection.execute(text(f'ATTACH DATABASE :path AS "{schema_name}"'), {"path": path})
    return True


def sqlite_schema_exists(engine: Engine, schema_name: str) -> bool:
    path = sqlite_schema_path(engine, schema_name)
    if path != ":memory:":
        return Path(path).exists()
    with engine.connect() as connection:
        return schema_name in attached_schemas(connection)


@contextmanager
def tenant_connection(engine: Engine, schema_name: str) -> Iterator[Connection]:
    """Yield a transactional connection whose template tables resolve to ``schema_name``."""
    schema_name = validate_schema_name(schema_name)
    with engine.connect() as connection:
        if is_sqlite(connection):
            # ATTACH is rejected inside a transaction, so it runs before begin().
            attach_schema(connection, schema_name)
            if connection.in_transaction():
                connection.commit()
        scoped = connection.execution_options(schema_translate_map={None: schema_name})
        with scoped.begin():
            yield scoped
