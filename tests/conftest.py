"""
Test fixtures and configuration for pytest.
"""

from datetime import datetime, timezone
from typing import Any, Dict, Generator, List, Optional, Tuple

import asyncpg
import httpx
import pytest
from fastapi.testclient import TestClient

from postcode_verifier.database import get_db
from postcode_verifier.main import app
from postcode_verifier.services.auspost import AusPostClient, get_auspost_client


VERIFY_LOG_COLUMNS = (
    "user_id", "postcode", "suburb", "state", "success", "error", "ts", "lat", "lng"
)


class MockDatabase:
    """Mock database for testing without PostgreSQL."""

    def __init__(self):
        self.users: Dict[str, Dict[str, Any]] = {}
        self.verify_logs: List[Dict[str, Any]] = []
        self.healthy = True
        self.fail_reads = False
        self.fail_writes = False

    async def fetchrow(self, query: str, *args):
        """Mock fetchrow."""
        if self.fail_reads:
            raise RuntimeError("database unavailable")
        if "INSERT INTO users" in query:
            username, password_hash = args
            if username in self.users:
                raise asyncpg.UniqueViolationError("duplicate key value violates unique constraint")
            self.users[username] = {
                "username": username,
                "password_hash": password_hash,
                "created_at": datetime.now(timezone.utc),
            }
            return self.users[username]
        if "FROM users" in query and args:
            return self.users.get(args[0])
        return None

    async def fetchval(self, query: str, *args):
        """Mock fetchval."""
        if "SELECT 1" in query:
            return 1 if self.healthy else None
        return None

    async def execute(self, query: str, *args):
        """Mock execute."""
        if "INSERT INTO verify_logs" in query:
            if self.fail_writes:
                raise RuntimeError("disk full")
            row = dict(zip(VERIFY_LOG_COLUMNS, args))
            row["id"] = len(self.verify_logs) + 1
            self.verify_logs.append(row)
        return "INSERT 0 1"

    async def fetch(self, query: str, *args):
        """Mock fetch."""
        if "FROM verify_logs" in query:
            user_id, limit, offset = args
            rows = [r for r in self.verify_logs if r["user_id"] == user_id]
            rows.sort(key=lambda r: (r["ts"], r["id"]), reverse=True)
            return rows[offset:offset + limit]
        return []

    async def health_check(self) -> bool:
        """Mock health check."""
        return self.healthy


def locality(
    location: str,
    postcode: str,
    state: str,
    latitude: float = 0.0,
    longitude: float = 0.0,
    **extra
) -> Dict[str, Any]:
    """Build a locality item as AusPost returns it."""
    item = {
        "category": "Delivery Area",
        "id": abs(hash((location, postcode))) % 100000,
        "latitude": latitude,
        "longitude": longitude,
        "location": location,
        "postcode": postcode,
        "state": state,
    }
    item.update(extra)
    return item


class FakeAusPost:
    """In-process stand-in for the AusPost search API."""

    def __init__(self):
        self.payloads: Dict[Tuple[str, Optional[str]], Any] = {}
        self.calls: List[Tuple[str, Optional[str], Optional[str]]] = []
        self.status_code = 200
        self.raise_error: Optional[Exception] = None

    def add(self, q: str, state: Optional[str], items: Any) -> None:
        """Answer searches for ``q`` in ``state`` with ``items``."""
        self.payloads[(q, state)] = {"localities": {"locality": items}}

    def handler(self, request: httpx.Request) -> httpx.Response:
        q = request.url.params.get("q")
        state = request.url.params.get("state")
        self.calls.append((q, state, request.headers.get("Authorization")))

        if self.raise_error is not None:
            raise self.raise_error
        if self.status_code != 200:
            return httpx.Response(self.status_code)

        return httpx.Response(200, json=self.payloads.get((q, state), {"localities": ""}))

    def client(self) -> AusPostClient:
        return AusPostClient(
            base_url="https://auspost.test/postcode/search.json",
            api_key="test-api-key",
            transport=httpx.MockTransport(self.handler)
        )


@pytest.fixture
def mock_db() -> MockDatabase:
    """Create a mock database for testing."""
    return MockDatabase()


@pytest.fixture
def fake_auspost() -> FakeAusPost:
    """AusPost fake preloaded with Melbourne and Sydney data."""
    fake = FakeAusPost()
    fake.add("MELBOURNE", "VIC", [
        locality("MELBOURNE", "3000", "VIC", -37.814563, 144.970267),
        locality("MELBOURNE", "3004", "VIC", -37.837, 144.976),
        locality("MELBOURNE AIRPORT", "3045", "VIC", -37.669, 144.833),
    ])
    # Single matches come back as an object, not a list
    fake.add("3000", "VIC", locality("MELBOURNE", "3000", "VIC", -37.814563, 144.970267))
    fake.add("3121", "VIC", [
        locality("RICHMOND", "3121", "VIC", -37.818, 145.001),
        locality("BURNLEY", "3121", "VIC", -37.827, 145.011),
    ])
    fake.add("SYDNEY", "NSW", [locality("SYDNEY", "2000", "NSW", -33.8688, 151.2093)])
    return fake


@pytest.fixture
def auspost(fake_auspost: FakeAusPost) -> AusPostClient:
    """AusPost client wired to the fake API."""
    return fake_auspost.client()


@pytest.fixture
def client(mock_db: MockDatabase, auspost: AusPostClient) -> Generator[TestClient, None, None]:
    """
    API test client with the database and AusPost overridden.

    Uses https so the Secure session cookie is sent back.
    """
    app.dependency_overrides[get_db] = lambda: mock_db
    app.dependency_overrides[get_auspost_client] = lambda: auspost

    yield TestClient(app, base_url="https://testserver")

    app.dependency_overrides.clear()
