import threading

import pytest
from sqlalchemy import select, text
from sqlalchemy.exc import IntegrityError

from rivr_api.core.database import build_engine
from rivr_api.core.errors import InvalidIdentifierError, ProvisioningError
from rivr_api.services import schema_provisioner as provisioner_module
from rivr_api.services.schema_provisioner import SchemaProvisioner
from rivr_api.services.tenant_db import tenant_connection
from rivr_api.tenancy.template import TEMPLATE_OBJECTS, TemplateObject, customers, pickup_requests, routes

TEMPLATE_TABLES = ["customers", "drivers", "pickup_requests", "routes"]


def _pickup(customer_id: int) -> dict:
    return {
        "customer_id": customer_id,
        "first_name": "Ana",
        "last_name": "Lima",
        "email": "ana@example.com",
        "business_name": "Ana Tires",
        "address": "1 Main St",
    }


def test_ensure_schema_creates_template_tables(engine):
    provisioner = SchemaProvisioner(engine)

    applied = provisioner.ensure_schema("tenant_acme")

    assert applied == ["schema", "customers", "pickup_requests", "drivers", "routes"]
    assert provisioner.list_tables("tenant_acme") == TEMPLATE_TABLES
    assert provisioner.schema_exists("tenant_acme")


def test_ensure_schema_twice_leaves_identical_table_set(engine):
    provisioner = SchemaProvisioner(engine)
    provisioner.ensure_schema("tenant_acme")
    first = provisioner.list_tables("tenant_acme")

    provisioner.ensure_schema("tenant_acme")

    assert provisioner.list_tables("tenant_acme") == first == TEMPLATE_TABLES


def test_ensure_schema_does_not_touch_existing_rows(engine):
    provisioner = SchemaProvisioner(engine)
    provisioner.ensure_schema("tenant_acme")
    provisioner.seed_demo_rows("tenant_acme")

    provisioner.ensure_schema("tenant_acme")

    with tenant_connection(engine, "tenant_acme") as connection:
        emails = connection.execute(select(customers.c.email).order_by(customers.c.id)).scalars().all()
    assert emails == ["demo.customer@example.com", "sample.customer@example.com"]


def test_pickup_request_cannot_reference_customer_of_another_schema(engine):
    provisioner = SchemaProvisioner(engine)
    provisioner.ensure_schema("tenant_acme")
    provisioner.ensure_schema("tenant_other")
    provisioner.seed_demo_rows("tenant_acme")

    with tenant_connection(engine, "tenant_acme") as connection:
        acme_customer_id = connection.execute(select(customers.c.id).limit(1)).scalar_one()
        connection.execute(pickup_requests.insert().values(**_pickup(acme_customer_id)))

    with pytest.raises(IntegrityError):
        with tenant_connection(engine, "tenant_other") as connection:
            connection.execute(pickup_requests.insert().values(**_pickup(acme_customer_id)))

    with tenant_connection(engine, "tenant_other") as connection:
        assert connection.execute(select(pickup_requests.c.id)).first() is None


def test_routes_accept_unassigned_and_unknown_driver(engine):
    SchemaProvisioner(engine).ensure_schema("tenant_acme")

    with tenant_connection(engine, "tenant_acme") as connection:
        connection.execute(routes.insert().values(name="Morning loop"))
        connection.execute(routes.insert().values(name="Evening loop", driver_id=999))
        count = connection.execute(select(routes.c.id)).all()

    assert len(count) == 2


def test_seed_demo_rows_on_unprovisioned_schema_raises(engine):
    with pytest.raises(ProvisioningError) as exc:
        SchemaProvisioner(engine).seed_demo_rows("tenant_missing")

    assert exc.value.object_name == "customers"
    assert exc.value.code == "ddl_failure"


def test_failed_statement_reports_object_name(engine, monkeypatch):
    broken = TemplateObject("broken_table", 2, lambda: text("CREATE TABLE broken_table ("))
    monkeypatch.setattr(provisioner_module, "TEMPLATE_OBJECTS", TEMPLATE_OBJECTS + (broken,))
    provisioner = SchemaProvisioner(engine)

    with pytest.raises(ProvisioningError) as exc:
        provisioner.ensure_schema("tenant_acme")

    assert exc.value.schema_name == "tenant_acme"
    assert exc.value.object_name == "broken_table"
    # Objects applied before the failure stay; a retry picks up from there.
    assert provisioner.list_tables("tenant_acme") == TEMPLATE_TABLES


def test_invalid_schema_name_rejected_before_any_ddl(engine):
    with pytest.raises(InvalidIdentifierError):
        SchemaProvisioner(engine).ensure_schema("tenant; DROP TABLE businesses")


def test_concurrent_first_time_provisioning(tmp_path):
    engine = build_engine(f"sqlite:///{tmp_path / 'platform.db'}")
    barrier = threading.Barrier(2)
    errors = []

    def _provision():
        barrier.wait()
        try:
            SchemaProvisioner(engine).ensure_schema("newtenant")
        except Exception as exc:  # collected and asserted below
            errors.append(exc)

    threads = [threading.Thread(target=_provision) for _ in range(2)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    try:
        assert errors == []
        assert SchemaProvisioner(engine).list_tables("newtenant") == TEMPLATE_TABLES
        assert (tmp_path / "platform__newtenant.db").exists()
    finally:
        engine.dispose()
