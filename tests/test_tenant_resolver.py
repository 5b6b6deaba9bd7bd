import pytest
from starlette.requests import Request

from rivr_api.core.errors import TenantNotFoundError, TenantRequiredError
from rivr_api.services.tenant_directory import TenantDirectory
from rivr_api.services.tenant_resolver import TenantResolver, TenantSource


def _build_request(
    path: str = "/api/auth/forgot-password",
    headers: dict[str, str] | None = None,
    cookies: dict[str, str] | None = None,
) -> Request:
    raw_headers = [(k.lower().encode(), v.encode()) for k, v in (headers or {}).items()]
    if cookies:
        cookie_header = "; ".join(f"{name}={value}" for name, value in cookies.items())
        raw_headers.append((b"cookie", cookie_header.encode()))
    scope = {
        "type": "http",
        "method": "POST",
        "path": path,
        "query_string": b"",
        "headers": raw_headers,
        "client": ("testclient", 50000),
        "server": ("testserver", 80),
        "scheme": "http",
    }
    return Request(scope)


@pytest.fixture()
def rivr_domain(monkeypatch):
    monkeypatch.setattr("rivr_api.core.config.BASE_DOMAIN", "rivr.app")
    monkeypatch.setattr("rivr_api.core.config.EXEC_SUBDOMAIN", "exec")


def test_header_wins_over_cookie():
    request = _build_request(headers={"X-Tenant-Subdomain": "foo"}, cookies={"tenant_subdomain": "bar"})

    signal = TenantResolver.extract_signal(request)

    assert signal.subdomain == "foo"
    assert signal.source == TenantSource.header


def test_explicit_field_wins_over_header():
    request = _build_request(headers={"X-Tenant-Subdomain": "foo"})

    signal = TenantResolver.extract_signal(request, explicit="Acme")

    assert signal.subdomain == "acme"
    assert signal.source == TenantSource.field


def test_host_subdomain_wins_over_cookie(rivr_domain):
    request = _build_request(headers={"Host": "acme.rivr.app:443"}, cookies={"tenant_subdomain": "bar"})

    signal = TenantResolver.extract_signal(request)

    assert signal.subdomain == "acme"
    assert signal.source == TenantSource.host


def test_forwarded_host_preferred_over_host(rivr_domain):
    request = _build_request(headers={"X-Forwarded-Host": "blue.rivr.app", "Host": "internal:8000"})

    assert TenantResolver.extract_signal(request).subdomain == "blue"


def test_cookie_used_when_nothing_else_present(rivr_domain):
    request = _build_request(headers={"Host": "rivr.app"}, cookies={"tenant_subdomain": "bar"})

    signal = TenantResolver.extract_signal(request)

    assert signal.subdomain == "bar"
    assert signal.source == TenantSource.cookie


@pytest.mark.parametrize("host", ["exec.rivr.app", "www.rivr.app", "rivr.app", "other-domain.com"])
def test_hosts_without_tenant_subdomain(rivr_domain, host):
    assert TenantResolver.extract_subdomain(host) is None


def test_malformed_header_is_skipped_for_next_source():
    request = _build_request(headers={"X-Tenant-Subdomain": "not a tenant!"}, cookies={"tenant_subdomain": "bar"})

    signal = TenantResolver.extract_signal(request)

    assert signal.subdomain == "bar"


def test_no_signal_yields_none():
    assert TenantResolver.extract_signal(_build_request()) is None


def test_resolve_binds_tenant_for_rest_of_request(db):
    directory = TenantDirectory()
    foo = directory.register(db, "foo", "tenant_foo")
    directory.register(db, "bar", "tenant_bar")
    request = _build_request(headers={"X-Tenant-Subdomain": "foo"}, cookies={"tenant_subdomain": "bar"})

    assert TenantResolver.resolve(request, db, directory) == foo
    assert request.state.tenant == foo
    # Later lookups keep the bound tenant even if asked about another one.
    assert TenantResolver.resolve(request, db, directory, explicit="bar") == foo


def test_rebinding_to_a_different_tenant_raises(db):
    directory = TenantDirectory()
    foo = directory.register(db, "foo", "tenant_foo")
    bar = directory.register(db, "bar", "tenant_bar")
    request = _build_request()
    TenantResolver.bind(request, foo)

    with pytest.raises(RuntimeError):
        TenantResolver.bind(request, bar)


def test_resolve_returns_none_without_signal(db):
    assert TenantResolver.resolve(_build_request(), db, TenantDirectory()) is None


def test_require_without_signal_raises_tenant_required(db):
    with pytest.raises(TenantRequiredError) as exc:
        TenantResolver.require(_build_request(), db, TenantDirectory())

    assert exc.value.code == "tenant_required"


def test_unknown_tenant_is_not_found_not_required(db):
    request = _build_request(headers={"X-Tenant-Subdomain": "ghost"})

    with pytest.raises(TenantNotFoundError):
        TenantResolver.require(request, db, TenantDirectory())
