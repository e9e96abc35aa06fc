"""Pytest configuration and fixtures."""

import os
import time
import uuid
from collections.abc import Generator
from datetime import datetime, timezone
from typing import Any, Mapping, Sequence
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from fastapi.testclient import TestClient

# Set test environment variables before importing application modules
os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("SUPABASE_URL", "https://test-project.supabase.co")
os.environ.setdefault("SUPABASE_SECRET_KEY", "test-secret-key")
os.environ.setdefault("SUPABASE_SIGNING_KEY_JWK", "test-signing-key-jwk")
os.environ.setdefault("RESEND_API_KEY", "")
os.environ.setdefault("FRONTEND_URL", "https://app.example.com")

from src.core.events import InvitationEventBus  # noqa: E402
from src.core.store import StoreError, StoreResult  # noqa: E402
from src.schemas.auth import IdentityUser  # noqa: E402

COMPANY_ID = "770e8400-e29b-41d4-a716-446655440000"
USER_ID = "550e8400-e29b-41d4-a716-446655440000"
OTHER_USER_ID = "660e8400-e29b-41d4-a716-446655440000"


class InMemoryStore:
    """Store backed by plain dicts, enforcing the same keys the database does.

    ``fail(operation, table, error)`` makes every matching call return
    ``error`` instead of touching the data.
    """

    def __init__(self) -> None:
        self.tables: dict[str, list[dict[str, Any]]] = {}
        self.failures: dict[tuple[str, str], StoreError] = {}
        self.calls: list[tuple[str, str]] = []

    def fail(self, operation: str, table: str, error: StoreError) -> None:
        self.failures[(operation, table)] = error

    def rows(self, table: str) -> list[dict[str, Any]]:
        return self.tables.setdefault(table, [])

    def _check(self, operation: str, table: str) -> StoreError | None:
        self.calls.append((operation, table))
        return self.failures.get((operation, table))

    @staticmethod
    def _matches(row: Mapping[str, Any], match: Mapping[str, Any]) -> bool:
        return all(str(row.get(key)) == str(value) for key, value in match.items())

    def _project(self, row: dict[str, Any], columns: str) -> dict[str, Any]:
        result = dict(row)
        if "companies(" in columns:
            companies = [c for c in self.rows("companies") if str(c["id"]) == str(row.get("company_id"))]
            result["companies"] = dict(companies[0]) if companies else None
        return result

    def insert(self, table: str, record: Mapping[str, Any]) -> StoreResult[dict[str, Any]]:
        if error := self._check("insert", table):
            return StoreResult.failure(error)
        row = {"id": str(uuid.uuid4()), "created_at": datetime.now(timezone.utc).isoformat()}
        row.update(record)
        self.rows(table).append(row)
        return StoreResult.success(dict(row))

    def select_one(
        self, table: str, match: Mapping[str, Any], columns: str = "*"
    ) -> StoreResult[dict[str, Any]]:
        if error := self._check("select", table):
            return StoreResult.failure(error)
        for row in self.rows(table):
            if self._matches(row, match):
                return StoreResult.success(self._project(row, columns))
        return StoreResult.failure(StoreError.not_found())

    def select_many(
        self,
        table: str,
        match: Mapping[str, Any],
        order_by: str | None = None,
        desc: bool = True,
        columns: str = "*",
    ) -> StoreResult[list[dict[str, Any]]]:
        if error := self._check("select", table):
            return StoreResult.failure(error)
        found = [self._project(row, columns) for row in self.rows(table) if self._matches(row, match)]
        if order_by:
            found.sort(key=lambda row: str(row.get(order_by)), reverse=desc)
        return StoreResult.success(found)

    def update(
        self, table: str, match: Mapping[str, Any], patch: Mapping[str, Any]
    ) -> StoreResult[dict[str, Any]]:
        if error := self._check("update", table):
            return StoreResult.failure(error)
        updated = [row for row in self.rows(table) if self._matches(row, match)]
        for row in updated:
            row.update(patch)
        if not updated:
            return StoreResult.failure(StoreError.not_found())
        return StoreResult.success(dict(updated[0]))

    def delete(self, table: str, match: Mapping[str, Any]) -> StoreResult[None]:
        if error := self._check("delete", table):
            return StoreResult.failure(error)
        self.tables[table] = [row for row in self.rows(table) if not self._matches(row, match)]
        return StoreResult.success(None)

    def upsert(
        self,
        table: str,
        record: Mapping[str, Any],
        conflict_keys: Sequence[str],
        ignore_duplicates: bool = False,
    ) -> StoreResult[dict[str, Any]]:
        if error := self._check("upsert", table):
            return StoreResult.failure(error)
        key = {k: record[k] for k in conflict_keys}
        for row in self.rows(table):
            if self._matches(row, key):
                if ignore_duplicates:
                    return StoreResult.failure(StoreError.not_found())
                row.update(record)
                return StoreResult.success(dict(row))
        row = {"id": str(uuid.uuid4())}
        row.update(record)
        self.rows(table).append(row)
        return StoreResult.success(dict(row))

    def rpc(self, function: str, params: Mapping[str, Any] | None = None) -> StoreResult[Any]:
        if error := self._check("rpc", function):
            return StoreResult.failure(error)
        if function != "expire_old_invitations":
            return StoreResult.failure(StoreError.not_found(f"Unknown function {function}"))
        now = datetime.now(timezone.utc)
        expired = 0
        for row in self.rows("company_invitations"):
            expires_at = datetime.fromisoformat(str(row["expires_at"]).replace("Z", "+00:00"))
            if row["status"] == "pending" and expires_at < now:
                row["status"] = "expired"
                expired += 1
        return StoreResult.success(expired)


@pytest.fixture(scope="session")
def test_settings() -> Generator[Any, None, None]:
    """Provide test settings with cleared cache.

    Yields:
        Settings: Test configuration settings.
    """
    from src.core.config import get_settings

    get_settings.cache_clear()

    settings = get_settings()
    yield settings

    get_settings.cache_clear()


@pytest.fixture
def memory_store() -> InMemoryStore:
    """Provide an empty in-memory store with one company."""
    store = InMemoryStore()
    store.rows("companies").append(
        {"id": COMPANY_ID, "name": "Acme Co", "description": "Shift work", "is_active": True}
    )
    return store


@pytest.fixture
def events() -> InvitationEventBus:
    """Provide a private event bus."""
    return InvitationEventBus()


@pytest.fixture
def email_service() -> MagicMock:
    """Provide an email service that accepts every message."""
    service = MagicMock()
    service.send_invitation_email = AsyncMock(return_value={"success": True, "email_id": "em_1"})
    return service


@pytest.fixture
def invitation_service(memory_store: InMemoryStore, email_service: MagicMock, events: InvitationEventBus):
    from src.services.invitation_service import InvitationService

    return InvitationService(store=memory_store, email_service=email_service, events=events)


@pytest.fixture
def company_service(memory_store: InMemoryStore):
    from src.services.company_service import CompanyService

    return CompanyService(store=memory_store)


@pytest.fixture
def profile_service(memory_store: InMemoryStore):
    from src.services.profile_service import ProfileService

    return ProfileService(store=memory_store)


def make_identity(email: str | None = "bob@co.com", user_id: str = USER_ID) -> MagicMock:
    """Identity provider double whose current user is ``email``, or nobody."""
    identity = MagicMock()
    user = IdentityUser(id=user_id, email=email) if email is not None else None
    identity.get_current_user = AsyncMock(return_value=user)
    return identity


@pytest.fixture
def identity_factory():
    """Build identity provider doubles; see ``make_identity``."""
    return make_identity


@pytest.fixture
def identity() -> MagicMock:
    """Identity provider signed in as bob@co.com."""
    return make_identity()


@pytest.fixture
def mock_supabase_client() -> Generator[MagicMock, None, None]:
    """Provide a mocked Supabase client.

    Yields:
        MagicMock: Mocked Supabase client for testing.
    """
    mock_client = MagicMock()

    mock_response = MagicMock()
    mock_response.data = []
    mock_client.table.return_value.select.return_value.limit.return_value.execute.return_value = (
        mock_response
    )

    with patch("src.core.supabase.get_supabase_client", return_value=mock_client):
        yield mock_client


@pytest.fixture
def client(mock_supabase_client: MagicMock) -> Generator[TestClient, None, None]:
    """Provide a test client for the FastAPI application.

    Args:
        mock_supabase_client: Mocked Supabase client fixture.

    Yields:
        TestClient: FastAPI test client.
    """
    from src.main import app

    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def app_store(memory_store: InMemoryStore, email_service: MagicMock) -> Generator[InMemoryStore, None, None]:
    """Back every service the API builds with ``memory_store``."""
    with (
        patch("src.services.company_service.SupabaseStore", return_value=memory_store),
        patch("src.services.invitation_service.SupabaseStore", return_value=memory_store),
        patch("src.services.profile_service.SupabaseStore", return_value=memory_store),
        patch("src.services.invitation_service.EmailService", return_value=email_service),
        patch("src.api.routes.join.get_store", return_value=memory_store),
    ):
        yield memory_store


@pytest.fixture
def mock_decode_jwt() -> Generator[MagicMock, None, None]:
    """Replace JWT verification; set ``return_value`` to a TokenPayload."""
    with patch("src.api.deps.decode_jwt") as mock_decode:
        yield mock_decode


@pytest.fixture
def auth_headers(mock_decode_jwt: MagicMock):
    """Build Authorization headers for a user whose token always verifies."""
    from src.schemas.auth import TokenPayload

    def as_user(email: str | None = "bob@co.com", user_id: str = USER_ID) -> dict[str, str]:
        now = int(time.time())
        mock_decode_jwt.return_value = TokenPayload(
            sub=user_id, email=email, role="authenticated", exp=now + 3600, iat=now
        )
        return {"Authorization": "Bearer test-token"}

    return as_user
