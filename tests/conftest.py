"""
Shared pytest fixtures for the FLGO test suite.

Ragic is never contacted: gateway tests run against httpx.MockTransport and
repository tests use FakeGateway, which records every call it receives.
Async tests run on the anyio plugin with the asyncio backend.
"""
import json
import os

import httpx
import pytest

# Settings exige SECRET_KEY: se define antes de importar app.*
os.environ.setdefault("SECRET_KEY", "test-secret-key")

from app.db.ragic import RagicGateway
from app.schemas.flgo import FlgoRecord, TankEntry
from app.schemas.user import CurrentUser

BASE_URL = "https://eu4.ragic.com/riveros"
API_KEY = "test-key"


@pytest.fixture
def anyio_backend():
    return "asyncio"


# ---------------------------------------------------------------------------
# Identity
# ---------------------------------------------------------------------------

@pytest.fixture
def user():
    return CurrentUser(
        email="captain@example.com",
        name="Jan Kowalski",
        assigned_vessel="MS Rhein",
        vessel_abbreviation="RHE",
    )


@pytest.fixture
def admin():
    return CurrentUser(email="admin@example.com", name="Admin", assigned_vessel="")


# ---------------------------------------------------------------------------
# Gateways
# ---------------------------------------------------------------------------

class RecordingTransport:
    """httpx handler that stores each request and answers from a callable."""

    def __init__(self, responder):
        self.responder = responder
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.responder(request)

    @property
    def last(self) -> httpx.Request:
        return self.requests[-1]

    def last_json(self):
        return json.loads(self.last.content)


@pytest.fixture
def make_gateway():
    """Build a RagicGateway whose HTTP calls go to `responder(request)`."""
    def _make(responder):
        transport = RecordingTransport(responder)
        client = httpx.AsyncClient(transport=httpx.MockTransport(transport))
        return RagicGateway(BASE_URL, API_KEY, client=client), transport
    return _make


class FakeGateway:
    """Stands in for RagicGateway in repository and API tests."""

    def __init__(self, rows=None, write_response=None, error=None):
        self.rows = rows if rows is not None else {}
        self.write_response = write_response if write_response is not None else {"status": "SUCCESS", "ragicId": 501}
        self.error = error
        self.fetch_calls = []
        self.write_calls = []
        self.auth_result = "sid-123"

    async def fetch_rows(self, sheet_path, filter=None, sort=None, limit=None):
        self.fetch_calls.append({"sheet": sheet_path, "filter": filter, "sort": sort, "limit": limit})
        if self.error:
            raise self.error
        rows = self.rows
        if callable(rows):
            return rows(sheet_path)
        return rows

    async def write_row(self, sheet_path, row_id, fields, subtables=None):
        self.write_calls.append({"sheet": sheet_path, "row_id": row_id, "fields": fields, "subtables": subtables})
        if self.error:
            raise self.error
        return self.write_response

    async def password_auth(self, email, password):
        return self.auth_result

    async def close(self):
        pass


@pytest.fixture
def fake_gateway():
    return FakeGateway()


# ---------------------------------------------------------------------------
# Domain helpers
# ---------------------------------------------------------------------------

def make_tank(name, fuel_type="Diesel", report_volume="", sub_row_id=None, **extra):
    return TankEntry(
        sub_row_id=sub_row_id,
        tank_name=name,
        fuel_type=fuel_type,
        report_volume=str(report_volume),
        **extra,
    )


def make_record(date, entry_type="Measurement", tanks=(), vessel="MS Rhein", record_id="1"):
    return FlgoRecord(
        record_id=record_id,
        date=date,
        time="08:00",
        vessel=vessel,
        entry_type=entry_type,
        tanks=list(tanks),
    )
