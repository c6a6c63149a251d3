from __future__ import annotations

import base64

import pytest
from fastapi import FastAPI, Request
from fastapi.testclient import TestClient

from employee_api.database import get_db
from employee_api.main import create_app
from security.credential_store import CredentialStoreUnavailable, InMemoryCredentialStore, Principal, SqlCredentialStore
from security.filter_chain import apply_security
from security.rbac import AuthorizationEngine
from security.rules import AccessRuleConfigurationError

JOHN = ("john", "test123")
MARY = ("mary", "test123")
SUSAN = ("susan", "test123")


@pytest.fixture
def client(session_factory) -> TestClient:
    app = create_app(store=SqlCredentialStore(session_factory))

    def _get_test_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = _get_test_db
    return TestClient(app)


def test_anonymous_request_is_challenged(client) -> None:
    r = client.get("/employees")
    assert r.status_code == 401
    assert r.headers["www-authenticate"] == 'Basic realm="Realm"'
    assert r.json() == {"detail": "Unauthorized"}


def test_employee_can_read(client) -> None:
    r = client.get("/employees", auth=JOHN)
    assert r.status_code == 200
    assert [e["email"] for e in r.json()] == ["leslie@example.com"]

    employee_id = r.json()[0]["id"]
    r = client.get(f"/employees/{employee_id}", auth=JOHN)
    assert r.status_code == 200
    assert r.json()["last_name"] == "Andrews"


def test_employee_cannot_create(client) -> None:
    body = {"first_name": "Avani", "last_name": "Gupta", "email": "avani@example.com"}
    r = client.post("/employees", json=body, auth=JOHN)
    assert r.status_code == 403
    assert r.json() == {"detail": "Access denied"}
    assert "www-authenticate" not in r.headers


def test_manager_can_create_and_update_but_not_delete(client) -> None:
    body = {"first_name": "Avani", "last_name": "Gupta", "email": "avani@example.com"}
    r = client.post("/employees", json=body, auth=MARY)
    assert r.status_code == 201
    employee_id = r.json()["id"]

    r = client.put(f"/employees/{employee_id}", json={**body, "last_name": "Rao"}, auth=MARY)
    assert r.status_code == 200
    assert r.json()["last_name"] == "Rao"

    r = client.delete(f"/employees/{employee_id}", auth=MARY)
    assert r.status_code == 403


def test_admin_can_delete(client) -> None:
    employee_id = client.get("/employees", auth=SUSAN).json()[0]["id"]
    r = client.delete(f"/employees/{employee_id}", auth=SUSAN)
    assert r.status_code == 200
    assert r.json() == {"detail": f"Deleted employee id - {employee_id}"}
    assert client.get(f"/employees/{employee_id}", auth=SUSAN).status_code == 404


@pytest.mark.parametrize(
    "auth",
    [("mary", "wrong"), ("ghost", "test123"), ("retired", "test123"), ("nobody", "test123")],
)
def test_failed_authentication_looks_the_same(client, auth) -> None:
    r = client.get("/employees", auth=auth)
    assert r.status_code == 401
    assert r.json() == {"detail": "Unauthorized"}
    assert r.headers["www-authenticate"].startswith("Basic")


def test_malformed_authorization_header_is_challenged(client) -> None:
    r = client.get("/employees", headers={"Authorization": "Basic %%%not-base64"})
    assert r.status_code == 401
    r = client.get("/employees", headers={"Authorization": "Bearer abc"})
    assert r.status_code == 401


def test_unmatched_path_is_denied_even_for_admin(client) -> None:
    assert client.get("/payroll", auth=SUSAN).status_code == 403
    assert client.get("/payroll").status_code == 403
    assert client.patch("/employees/1", json={}, auth=SUSAN).status_code == 403


def test_request_id_is_echoed(client) -> None:
    r = client.get("/employees", headers={"x-request-id": "abc-123"})
    assert r.headers["x-request-id"] == "abc-123"
    assert client.get("/employees").headers["x-request-id"]


def test_store_outage_is_a_service_error() -> None:
    class BrokenStore:
        def resolve(self, principal_id):
            raise CredentialStoreUnavailable("database down")

    app = create_app(store=BrokenStore())
    r = TestClient(app).get("/employees", auth=MARY)
    assert r.status_code == 503
    assert r.json() == {"detail": "Service unavailable"}


def test_store_not_consulted_without_credentials() -> None:
    class CountingStore:
        calls = 0

        def resolve(self, principal_id):
            CountingStore.calls += 1
            return None

    app = create_app(store=CountingStore())
    assert TestClient(app).get("/employees").status_code == 401
    assert CountingStore.calls == 0


def test_invalid_rule_table_fails_at_startup() -> None:
    with pytest.raises(AccessRuleConfigurationError):
        create_app(rules=[("GET", "/employees/**", "EMPLOYEE"), ("GET", "/employees", "EMPLOYEE")])


def test_principal_is_attached_to_request(mary) -> None:
    app = FastAPI()

    @app.get("/whoami")
    def whoami(request: Request):
        return {"id": request.state.principal.id}

    apply_security(
        app,
        AuthorizationEngine([("GET", "/whoami", "EMPLOYEE")]),
        InMemoryCredentialStore([mary]),
        realm="Directory",
    )
    client = TestClient(app)
    assert client.get("/whoami", auth=MARY).json() == {"id": "mary"}
    assert client.get("/whoami").headers["www-authenticate"] == 'Basic realm="Directory"'


def test_utf8_basic_credentials_authenticate() -> None:
    member = Principal(id="mary", secret_hash="{noop}pässwort", roles=frozenset({"EMPLOYEE"}))
    app = FastAPI()

    @app.get("/whoami")
    def whoami(request: Request):
        return {"id": request.state.principal.id}

    apply_security(app, AuthorizationEngine([("GET", "/whoami", "EMPLOYEE")]), InMemoryCredentialStore([member]))
    token = base64.b64encode("mary:pässwort".encode("utf-8")).decode("ascii")
    r = TestClient(app).get("/whoami", headers={"Authorization": f"Basic {token}"})
    assert r.status_code == 200
    assert r.json() == {"id": "mary"}


def test_basic_credentials_without_separator_are_challenged(client) -> None:
    token = base64.b64encode(b"mary").decode("ascii")
    r = client.get("/employees", headers={"Authorization": f"Basic {token}"})
    assert r.status_code == 401


def test_store_outage_inside_a_route_is_a_service_error(mary) -> None:
    app = FastAPI()

    @app.get("/directory")
    def directory():
        raise CredentialStoreUnavailable("database down")

    apply_security(app, AuthorizationEngine([("GET", "/directory", "EMPLOYEE")]), InMemoryCredentialStore([mary]))
    r = TestClient(app).get("/directory", auth=MARY)
    assert r.status_code == 503
    assert r.json() == {"detail": "Service unavailable"}
