"""
End-to-end tests of the HTTP layer with TestClient. The lifespan builds
everything on top of FakeGateway, so no request leaves the process.
"""
import pytest
from fastapi.testclient import TestClient

import app.main as main_module
from app.api.dependencies import get_current_user
from app.core import security
from app.core.config import settings
from app.core.exceptions import BackendRejected, BackendUnavailable
from app.main import app
from app.models.ragic_fields import FLGO_FIELDS, SHEETS, USER_FIELDS, VESSEL_FIELDS
from conftest import FakeGateway

SUB_KEY = f"_subtable_{FLGO_FIELDS.SUB_TABLE_ID}"

FLGO_ROWS = {
    "12": {
        FLGO_FIELDS.DATE: "2024/01/01",
        FLGO_FIELDS.ENTRY_TYPE: "Measurement",
        FLGO_FIELDS.HEADER_VESSEL: "MS Rhein",
        SUB_KEY: {
            "1": {FLGO_FIELDS.SUB_TANK_NAME: "A", FLGO_FIELDS.SUB_FUEL_TYPE: "Diesel", FLGO_FIELDS.REPORT_VOLUME: "100"},
            "2": {FLGO_FIELDS.SUB_TANK_NAME: "B", FLGO_FIELDS.SUB_FUEL_TYPE: "Diesel", FLGO_FIELDS.REPORT_VOLUME: "50"},
        },
    },
    "13": {
        FLGO_FIELDS.DATE: "2024/01/01",
        FLGO_FIELDS.ENTRY_TYPE: "Bunkering",
        FLGO_FIELDS.HEADER_VESSEL: "MS Rhein",
        SUB_KEY: {
            "3": {FLGO_FIELDS.SUB_TANK_NAME: "A", FLGO_FIELDS.SUB_FUEL_TYPE: "Diesel", FLGO_FIELDS.REPORT_VOLUME: "30"},
        },
    },
}


def _sheet_rows(sheet_path):
    if sheet_path == SHEETS.USERS:
        return {"7": {
            USER_FIELDS.NAME: "Jan Kowalski",
            USER_FIELDS.ASSIGNED_VESSEL: "MS Rhein",
            USER_FIELDS.VESSEL_ABBREVIATION: "RHE",
        }}
    if sheet_path == SHEETS.VESSELS:
        return {"1": {VESSEL_FIELDS.NAME: "MS Rhein"}, "2": {VESSEL_FIELDS.NAME: "Amadeus"}}
    if sheet_path == SHEETS.FLGO:
        return FLGO_ROWS
    return {}


@pytest.fixture
def gateway():
    return FakeGateway(rows=_sheet_rows)


@pytest.fixture
def client(gateway, monkeypatch):
    monkeypatch.setattr(main_module, "create_gateway", lambda: gateway)
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def logged_in(client):
    response = client.post("/api/auth", json={"email": "captain@example.com", "password": "secret"})
    assert response.status_code == 200
    return client


def _measurement(**overrides):
    body = {
        "date": "2024-01-05",
        "time": "09:00",
        "vessel": "MS Rhein",
        "tanks": [{"tankName": "A", "fuelType": "Diesel", "actualVolume": "120"}],
    }
    body.update(overrides)
    return body


def _fetches(gateway, sheet):
    return [c for c in gateway.fetch_calls if c["sheet"] == sheet]


# ---------------------------------------------------------------------------
# Auth
# ---------------------------------------------------------------------------

def test_health(client):
    assert client.get("/api/health").json() == {"status": "ok"}


def test_login_requires_email_and_password(client):
    response = client.post("/api/auth", json={"email": "captain@example.com"})

    assert response.status_code == 400
    assert response.json() == {"error": "Email and password are required."}


def test_login_with_bad_credentials(client, gateway):
    gateway.auth_result = None

    response = client.post("/api/auth", json={"email": "a@b.c", "password": "x"})

    assert response.status_code == 401
    assert response.json() == {"error": "Invalid email or password."}
    assert settings.SESSION_COOKIE_NAME not in response.cookies


def test_login_sets_session_cookie_and_returns_profile(client):
    response = client.post("/api/auth", json={"email": "captain@example.com", "password": "secret"})

    assert response.status_code == 200
    body = response.json()
    assert body["ok"] is True
    assert body["user"] == {
        "email": "captain@example.com",
        "name": "Jan Kowalski",
        "vessel": "MS Rhein",
        "vesselAbbr": "RHE",
    }
    assert settings.SESSION_COOKIE_NAME in response.cookies

    me = client.get("/api/auth/me")
    assert me.status_code == 200
    assert me.json()["vessel"] == "MS Rhein"


def test_bearer_header_is_accepted(client, user):
    token = security.create_access_token(user)

    response = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 200
    assert response.json()["email"] == user.email


def test_logout_clears_session(logged_in):
    response = logged_in.post("/api/auth/logout")

    assert response.status_code == 200
    assert logged_in.get("/api/auth/me").status_code == 401


@pytest.mark.parametrize("path", ["/api/auth/me", "/api/flgo/records", "/api/flgo/reports/bar"])
def test_protected_routes_require_session(client, path):
    response = client.get(path)

    assert response.status_code == 401
    assert response.json() == {"error": "Unauthorized."}


def test_invalid_token_is_unauthorized(client):
    client.cookies.set(settings.SESSION_COOKIE_NAME, "not-a-jwt")

    assert client.get("/api/auth/me").status_code == 401


# ---------------------------------------------------------------------------
# Reference data
# ---------------------------------------------------------------------------

def test_vessels(logged_in):
    assert logged_in.get("/api/flgo/vessels").json() == {"vessels": ["Amadeus", "MS Rhein"]}


def test_tanks_without_vessel_is_bad_request(logged_in):
    response = logged_in.get("/api/flgo/tanks")

    assert response.status_code == 400
    assert response.json() == {"error": "vessel query param required."}


# ---------------------------------------------------------------------------
# Records and writes
# ---------------------------------------------------------------------------

def test_records_are_split_and_cached(logged_in, gateway):
    first = logged_in.get("/api/flgo/records").json()
    logged_in.get("/api/flgo/records")

    assert [r["ragicId"] for r in first["records"]] == ["12", "13"]
    assert [r["ragicId"] for r in first["measurements"]] == ["12"]
    assert [r["ragicId"] for r in first["bunkerings"]] == ["13"]
    assert first["records"][0]["tanks"][0]["tankName"] == "A"
    assert len(_fetches(gateway, SHEETS.FLGO)) == 1


def test_records_refresh_reloads(logged_in, gateway):
    logged_in.get("/api/flgo/records")
    logged_in.get("/api/flgo/records", params={"refresh": "true"})

    assert len(_fetches(gateway, SHEETS.FLGO)) == 2


def test_admin_records_are_empty_without_backend_call(client, gateway, admin):
    app.dependency_overrides[get_current_user] = lambda: admin

    body = client.get("/api/flgo/records").json()

    assert body == {"records": [], "measurements": [], "bunkerings": []}
    assert _fetches(gateway, SHEETS.FLGO) == []


def test_measurement_write_invalidates_cache(logged_in, gateway):
    logged_in.get("/api/flgo/records")

    response = logged_in.post("/api/flgo/measurement", json=_measurement())

    assert response.status_code == 200
    assert response.json() == {"ok": True, "ragicId": "501"}
    write = gateway.write_calls[0]
    assert write["row_id"] is None
    assert write["fields"][FLGO_FIELDS.DONE_BY] == "Jan Kowalski"

    logged_in.get("/api/flgo/records")
    assert len(_fetches(gateway, SHEETS.FLGO)) == 2


def test_measurement_edit_targets_existing_row(logged_in, gateway):
    body = _measurement(
        editRagicId="12",
        tanks=[
            {"tankName": "A", "subtableRowId": "1", "actualVolume": "120"},
            {"tankName": "C", "actualVolume": "5"},
        ],
    )

    response = logged_in.post("/api/flgo/measurement", json=body)

    assert response.status_code == 200
    write = gateway.write_calls[0]
    assert write["row_id"] == "12"
    assert list(write["subtables"][FLGO_FIELDS.SUB_TABLE_ID]) == ["1", "-1"]


def test_bunkering_without_fuel_type_is_bad_request(logged_in, gateway):
    response = logged_in.post("/api/flgo/bunkering", json=_measurement())

    assert response.status_code == 400
    assert response.json() == {"error": "fuelType is required for bunkering."}
    assert gateway.write_calls == []


def test_bunkering_write(logged_in, gateway):
    response = logged_in.post("/api/flgo/bunkering", json=_measurement(fuelType="Diesel"))

    assert response.status_code == 200
    assert gateway.write_calls[0]["fields"][FLGO_FIELDS.ENTRY_TYPE] == "Bunkering"


def test_update_record(logged_in, gateway):
    body = _measurement(entryType="Measurement")

    response = logged_in.put("/api/flgo/records/12", json=body)

    assert response.status_code == 200
    assert gateway.write_calls[0]["row_id"] == "12"


def test_write_to_unassigned_vessel_is_forbidden(logged_in, gateway):
    response = logged_in.post("/api/flgo/measurement", json=_measurement(vessel="Amadeus"))

    assert response.status_code == 403
    assert response.json() == {"error": "Vessel not assigned to this user."}
    assert gateway.write_calls == []


def test_admin_must_name_a_vessel(client, gateway, admin):
    app.dependency_overrides[get_current_user] = lambda: admin

    response = client.post("/api/flgo/measurement", json=_measurement(vessel=""))

    assert response.status_code == 400
    assert gateway.write_calls == []


def test_backend_unavailable_maps_to_503(logged_in, gateway):
    gateway.error = BackendUnavailable("timeout")

    response = logged_in.get("/api/flgo/records")

    assert response.status_code == 503
    assert response.json() == {"error": "The data service is unavailable. Please try again."}


def test_backend_rejection_maps_to_502_without_detail(logged_in, gateway):
    gateway.error = BackendRejected(400, "field 1008768 invalid")

    response = logged_in.post("/api/flgo/measurement", json=_measurement())

    assert response.status_code == 502
    assert "1008768" not in response.text
    assert response.json() == {"error": "Failed to submit entry. Please try again."}


def test_failed_write_keeps_cache(logged_in, gateway):
    logged_in.get("/api/flgo/records")
    gateway.error = BackendRejected(400, "bad")
    logged_in.post("/api/flgo/measurement", json=_measurement())
    gateway.error = None

    logged_in.get("/api/flgo/records")

    assert len(_fetches(gateway, SHEETS.FLGO)) == 1


# ---------------------------------------------------------------------------
# Reports
# ---------------------------------------------------------------------------

def test_bar_report(logged_in):
    body = logged_in.get("/api/flgo/reports/bar").json()

    assert body["points"] == [{"date": "2024-01-01", "measurement": 150, "bunkering": 30, "total": 180}]
    assert body["fuelTypes"] == ["Diesel"]


def test_bar_report_date_filter(logged_in):
    body = logged_in.get("/api/flgo/reports/bar", params={"dateFrom": "2024-02-01"}).json()

    assert body["points"] == []


def test_final_report(logged_in):
    pivot = logged_in.get("/api/flgo/reports/final").json()["pivot"]

    assert pivot["tankNames"] == ["A", "B"]
    assert pivot["rows"] == [{"date": "2024-01-01", "values": {"A": 130.0, "B": 50.0}, "total": 180.0}]
    assert pivot["totals"] == {"A": 130.0, "B": 50.0}
    assert pivot["grandTotal"] == 180.0


@pytest.mark.parametrize("path", ["/api/flgo/reports/bar.pdf", "/api/flgo/reports/final.pdf"])
def test_pdf_exports(logged_in, path):
    response = logged_in.get(path, params={"fuelType": "Diesel"})

    assert response.status_code == 200
    assert response.headers["content-type"] == "application/pdf"
    assert response.content.startswith(b"%PDF")


@pytest.mark.parametrize("path", ["/api/flgo/reports/bar.pdf", "/api/flgo/reports/final.pdf"])
def test_pdf_exports_without_data(logged_in, path):
    response = logged_in.get(path, params={"fuelType": "AdBlue"})

    assert response.status_code == 404
    assert response.json() == {"error": "No data for the selected filters."}


def test_unknown_route_uses_error_shape(client):
    response = client.get("/api/flgo/nothing-here")

    assert response.status_code == 404
    assert set(response.json()) == {"error"}
