from urllib.parse import parse_qs, urlsplit

from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy import select

from rivr_api.core.database import get_db
from rivr_api.core.errors import register_exception_handlers
from rivr_api.models.business import Business
from rivr_api.models.business_employee import BusinessEmployee
from rivr_api.models.password_reset_request import PasswordResetRequest
from rivr_api.models.rivr_admin import RivrAdmin
from rivr_api.routers.auth import router as auth_router
from rivr_api.services import password_reset
from rivr_api.services.passwords import hash_password, verify_password
from rivr_api.services.schema_provisioner import SchemaProvisioner
from rivr_api.services.tenant_db import tenant_connection
from rivr_api.services.tenant_directory import tenant_directory
from rivr_api.tenancy.template import customers, drivers


def _build_client(db) -> tuple[TestClient, list[str]]:
    acme = tenant_directory.register(db, "acme", "tenant_acme", business_name="Acme")
    business = db.query(Business).filter(Business.id == acme.business_id).one()
    business.owner_email = "owner@acme.example.com"
    business.owner_password_hash = hash_password("owner-pass")
    db.add(RivrAdmin(email="admin@rivr-workflow.com", password_hash=hash_password("admin-pass"), first_name="RIVR", last_name="Admin"))
    db.add(
        BusinessEmployee(
            business_id=acme.business_id,
            email="viewer@acme.example.com",
            first_name="Vi",
            last_name="Ewer",
            password_hash=hash_password("viewer-pass"),
        )
    )
    db.commit()

    engine = db.get_bind()
    SchemaProvisioner(engine).ensure_schema(acme.schema_name)
    with tenant_connection(engine, acme.schema_name) as connection:
        connection.execute(
            drivers.insert().values(name="Dee Driver", email="driver@acme.example.com", password_hash=hash_password("driver-pass"))
        )
        connection.execute(
            customers.insert().values(
                first_name="Cy",
                last_name="Customer",
                email="cy@acme.example.com",
                business_name="Cy Tires",
                address="2 Side St",
                password_hash=hash_password("customer-pass"),
            )
        )

    sent_links: list[str] = []

    app = FastAPI()
    register_exception_handlers(app)
    app.include_router(auth_router)
    app.dependency_overrides[get_db] = lambda: db
    return TestClient(app), sent_links


def _capture_reset_links(monkeypatch, sent_links: list[str]) -> None:
    monkeypatch.setattr(
        password_reset.notifications,
        "send_password_reset",
        lambda email, url: sent_links.append(url),
    )


def test_admin_login_sets_session_cookie_and_profile(db):
    client, _ = _build_client(db)

    response = client.post("/api/auth/admin/login", json={"email": "Admin@rivr-workflow.com", "password": "admin-pass"})

    assert response.status_code == 200
    body = response.json()
    assert body["role"] == "rivr_admin"
    assert body["redirect_url"] == "/rivr-exec"
    assert "rivr_session" in response.cookies

    profile = client.get("/api/auth/profile", headers={"Authorization": f"Bearer {body['access_token']}"})
    assert profile.status_code == 200
    assert profile.json()["email"] == "admin@rivr-workflow.com"


def test_wrong_password_and_inactive_account_look_the_same(db):
    client, _ = _build_client(db)
    admin = db.query(RivrAdmin).one()
    admin.is_active = False
    db.commit()

    inactive = client.post("/api/auth/admin/login", json={"email": "admin@rivr-workflow.com", "password": "admin-pass"})
    wrong = client.post("/api/auth/business/login", json={"email": "owner@acme.example.com", "password": "nope"})

    assert inactive.status_code == wrong.status_code == 401
    assert inactive.json() == wrong.json()


def test_business_owner_login(db):
    client, _ = _build_client(db)

    response = client.post("/api/auth/business/login", json={"email": "owner@acme.example.com", "password": "owner-pass"})

    assert response.status_code == 200
    assert response.json()["tenant"] == "acme"
    assert response.json()["redirect_url"] == "/business-admin"


def test_driver_login_requires_tenant(db):
    client, _ = _build_client(db)

    response = client.post("/api/auth/driver/login", json={"email": "driver@acme.example.com", "password": "driver-pass"})

    assert response.status_code == 400
    assert response.json()["code"] == "tenant_required"


def test_driver_login_inside_tenant(db):
    client, _ = _build_client(db)

    response = client.post(
        "/api/auth/driver/login",
        json={"email": "driver@acme.example.com", "password": "driver-pass"},
        headers={"X-Tenant-Subdomain": "acme"},
    )

    assert response.status_code == 200
    assert response.json()["role"] == "driver"
    assert response.json()["tenant"] == "acme"


def test_employee_login_with_tenant_in_body(db):
    client, _ = _build_client(db)

    response = client.post(
        "/api/auth/employee/login",
        json={"email": "viewer@acme.example.com", "password": "viewer-pass", "tenant": "acme"},
    )

    assert response.status_code == 200
    assert response.json()["role"] == "employee_viewer"


def test_customer_login_needs_resolvable_tenant(db):
    client, _ = _build_client(db)

    missing = client.post("/api/auth/customer/login", json={"email": "cy@acme.example.com", "password": "customer-pass"})
    unknown = client.post(
        "/api/auth/customer/login",
        json={"email": "cy@acme.example.com", "password": "customer-pass"},
        headers={"X-Tenant-Subdomain": "ghost"},
    )
    ok = client.post(
        "/api/auth/customer/login",
        json={"email": "cy@acme.example.com", "password": "customer-pass"},
        headers={"Cookie": "tenant_subdomain=acme"},
    )

    assert missing.status_code == 400
    assert missing.json()["code"] == "tenant_required"
    assert unknown.status_code == 404
    assert ok.status_code == 200
    assert ok.json()["customer"]["email"] == "cy@acme.example.com"


def test_forgot_password_auto_without_tenant_is_tenant_required(db, monkeypatch):
    client, sent_links = _build_client(db)
    _capture_reset_links(monkeypatch, sent_links)

    for body in ({"email": "driver@acme.example.com"}, {"email": "driver@acme.example.com", "role": "auto"}):
        response = client.post("/api/auth/forgot-password", json=body)
        assert response.status_code == 400
        assert response.json()["code"] == "tenant_required"

    assert sent_links == []
    assert db.query(PasswordResetRequest).count() == 0


def test_forgot_password_tenant_free_role_needs_no_tenant(db, monkeypatch):
    client, sent_links = _build_client(db)
    _capture_reset_links(monkeypatch, sent_links)

    response = client.post("/api/auth/forgot-password", json={"email": "admin@rivr-workflow.com", "role": "rivr_admin"})

    assert response.status_code == 200
    assert response.json()["message"] == password_reset.GENERIC_RESET_MESSAGE
    assert len(sent_links) == 1
    reset = db.query(PasswordResetRequest).one()
    assert reset.role == "rivr_admin"
    assert reset.tenant_id is None


def test_forgot_password_tenant_free_roles_ignore_stale_tenant_signals(db, monkeypatch):
    client, sent_links = _build_client(db)
    _capture_reset_links(monkeypatch, sent_links)

    admin = client.post(
        "/api/auth/forgot-password",
        json={"email": "admin@rivr-workflow.com", "role": "rivr_admin"},
        headers={"Cookie": "tenant_subdomain=ghost"},
    )
    owner = client.post(
        "/api/auth/forgot-password",
        json={"email": "owner@acme.example.com", "role": "business_owner"},
        headers={"X-Tenant-Subdomain": "ghost"},
    )
    driver = client.post(
        "/api/auth/forgot-password",
        json={"email": "driver@acme.example.com", "role": "driver"},
        headers={"Cookie": "tenant_subdomain=ghost"},
    )

    assert admin.status_code == 200
    assert admin.json()["message"] == password_reset.GENERIC_RESET_MESSAGE
    assert owner.status_code == 200
    assert len(sent_links) == 2
    assert driver.status_code == 404


def test_forgot_password_unknown_email_gets_same_answer(db, monkeypatch):
    client, sent_links = _build_client(db)
    _capture_reset_links(monkeypatch, sent_links)

    response = client.post(
        "/api/auth/forgot-password",
        json={"email": "nobody@acme.example.com", "tenant": "acme"},
    )

    assert response.status_code == 200
    assert response.json()["message"] == password_reset.GENERIC_RESET_MESSAGE
    assert sent_links == []


def test_driver_reset_round_trip(db, monkeypatch):
    client, sent_links = _build_client(db)
    _capture_reset_links(monkeypatch, sent_links)

    forgot = client.post(
        "/api/auth/forgot-password",
        json={"email": "driver@acme.example.com", "role": "auto"},
        headers={"X-Tenant-Subdomain": "acme"},
    )
    assert forgot.status_code == 200
    query = parse_qs(urlsplit(sent_links[0]).query)
    assert query["tenant"] == ["acme"]
    token = query["token"][0]

    reset = client.post("/api/auth/reset-password", json={"token": token, "new_password": "brand-new-pass"})
    assert reset.status_code == 200

    with tenant_connection(db.get_bind(), "tenant_acme") as connection:
        stored_hash = connection.execute(
            select(drivers.c.password_hash).where(drivers.c.email == "driver@acme.example.com")
        ).scalar_one()
    assert verify_password("brand-new-pass", stored_hash)

    reused = client.post("/api/auth/reset-password", json={"token": token, "new_password": "another-pass"})
    assert reused.status_code == 400
    assert reused.json()["code"] == "invalid_reset_token"


def test_reset_password_rejects_tampered_token_and_short_password(db):
    client, _ = _build_client(db)

    tampered = client.post("/api/auth/reset-password", json={"token": "not-a-token", "new_password": "long-enough"})
    short = client.post("/api/auth/reset-password", json={"token": "whatever", "new_password": "short"})

    assert tampered.status_code == 400
    assert tampered.json()["code"] == "invalid_reset_token"
    assert short.status_code == 422


def test_logout_clears_cookie(db):
    client, _ = _build_client(db)

    response = client.post("/api/auth/logout")

    assert response.status_code == 200
    assert 'rivr_session=""' in response.headers["set-cookie"]


def test_profile_without_session_is_unauthenticated(db):
    client, _ = _build_client(db)

    response = client.get("/api/auth/profile")

    assert response.status_code == 401
    assert response.json()["login_url"] == "/auth"
