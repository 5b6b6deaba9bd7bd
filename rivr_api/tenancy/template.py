"""Per-tenant table template.

The tables are declared without a schema. At execution time a
``schema_translate_map`` of ``{None: <tenant schema>}`` places them (and the
``pickup_requests -> customers`` foreign key) inside the tenant's namespace,
so a pickup request can only ever reference a customer of the same tenant.

``TEMPLATE_OBJECTS`` is the ordered, versioned list the provisioner applies.
New objects are appended with a higher ``since_version``; existing entries
are never edited in place.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Callable

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    func,
)
from sqlalchemy.schema import CreateTable, DDLElement

tenant_metadata = MetaData()

customers = Table(
    "customers",
    tenant_metadata,
    Column("id", Integer, primary_key=True),
    Column("first_name", Text, nullable=False),
    Column("last_name", Text, nullable=False),
    Column("email", Text, nullable=False),
    Column("phone", Text),
    Column("business_name", Text, nullable=False),
    Column("address", Text, nullable=False),
    Column("access_token", Text),
    Column("password_hash", Text),
    Column("created_at", DateTime, server_default=func.now(), nullable=False),
    Column("updated_at", DateTime, server_default=func.now(), nullable=False),
)

pickup_requests = Table(
    "pickup_requests",
    tenant_metadata,
    Column("id", Integer, primary_key=True),
    Column("customer_id", Integer, ForeignKey("customers.id"), nullable=False),
    Column("first_name", Text, nullable=False),
    Column("last_name", Text, nullable=False),
    Column("email", Text, nullable=False),
    Column("phone", Text),
    Column("business_name", Text, nullable=False),
    Column("address", Text, nullable=False),
    Column("wheel_count", Integer, server_default="1", nullable=False),
    Column("latitude", Text),
    Column("longitude", Text),
    Column("is_completed", Boolean, server_default="0", nullable=False),
    Column("completed_at", DateTime),
    Column("completion_photo", Text),
    Column("completion_location", Text),
    Column("completion_notes", Text),
    Column("employee_name", Text),
    Column("ro_number", Text),
    Column("customer_notes", Text),
    Column("wheel_qr_codes", JSON),
    Column("is_delivered", Boolean, server_default="0", nullable=False),
    Column("delivered_at", DateTime),
    Column("delivery_notes", Text),
    Column("delivery_qr_codes", JSON),
    Column("is_archived", Boolean, server_default="0", nullable=False),
    Column("archived_at", DateTime),
    Column("route_id", Integer),
    Column("route_order", Integer),
    Column("priority", String(20), server_default="normal"),
    Column("estimated_pickup_time", DateTime),
    Column("production_status", String(40), server_default="pending"),
    Column("billed_at", DateTime),
    Column("billed_amount", Text),
    Column("invoice_number", Text),
    Column("created_at", DateTime, server_default=func.now(), nullable=False),
)

drivers = Table(
    "drivers",
    tenant_metadata,
    Column("id", Integer, primary_key=True),
    Column("name", Text, nullable=False),
    Column("email", Text),
    Column("phone", Text),
    Column("password_hash", Text),
    Column("is_active", Boolean, server_default="1", nullable=False),
    Column("current_latitude", Text),
    Column("current_longitude", Text),
)

# driver_id is a soft reference: routes may exist before a driver is assigned.
routes = Table(
    "routes",
    tenant_metadata,
    Column("id", Integer, primary_key=True),
    Column("name", Text, nullable=False),
    Column("driver_id", Integer),
    Column("status", String(40), server_default="pending", nullable=False),
    Column("total_distance", Text),
    Column("estimated_duration", Integer),
    Column("actual_duration", Integer),
    Column("start_time", DateTime),
    Column("end_time", DateTime),
    Column("optimized_waypoints", Text),
    Column("created_at", DateTime, server_default=func.now(), nullable=False),
    Column("updated_at", DateTime, server_default=func.now(), nullable=False),
)


@dataclass(frozen=True)
class TemplateObject:
    name: str
    since_version: int
    build: Callable[[], DDLElement]


def _create_table(table: Table) -> Callable[[], DDLElement]:
    return lambda: CreateTable(table, if_not_exists=True)


# customers must precede pickup_requests (foreign key).
TEMPLATE_OBJECTS: tuple[TemplateObject, ...] = (
    TemplateObject("customers", 1, _create_table(customers)),
    TemplateObject("pickup_requests", 1, _create_table(pickup_requests)),
    TemplateObject("drivers", 1, _create_table(drivers)),
    TemplateObject("routes", 1, _create_table(routes)),
)

TEMPLATE_VERSION = max(obj.since_version for obj in TEMPLATE_OBJECTS)
TEMPLATE_TABLE_NAMES = tuple(obj.name for obj in TEMPLATE_OBJECTS)

DEMO_CUSTOMERS = (
    {
        "first_name": "Demo",
        "last_name": "Customer",
        "email": "demo.customer@example.com",
        "phone": "(555) 000-0000",
        "business_name": "Demo Business",
        "address": "100 Demo St",
        "access_token": "demo-token-1",
    },
    {
        "first_name": "Sample",
        "last_name": "Customer",
        "email": "sample.customer@example.com",
        "phone": "(555) 000-0001",
        "business_name": "Sample Business",
        "address": "101 Sample Ave",
        "access_token": "demo-token-2",
    },
)
