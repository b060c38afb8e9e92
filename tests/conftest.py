import itertools
from datetime import date

import pytest
import pytest_asyncio

from nexus_crm.config import settings
from nexus_crm.context import AppContext
from nexus_crm.models.domain.contact_domain import Session
from nexus_crm.services.advisor_service import AdvisorService
from nexus_crm.services.auth_service import LocalAuthProvider
from nexus_crm.services.local_storage import LocalStorage
from nexus_crm.services.store.local_store import LocalContactStore
from nexus_crm.services.supabase.realtime_client import ChangeEvent
from nexus_crm.services.supabase.rest_client import SupabaseError


class FakeRedis:
    def __init__(self):
        self.store: dict[str, str] = {}
        self.fail_writes = False
        self.closed = False

    async def set(self, key: str, value: str) -> bool:
        if self.fail_writes:
            raise ConnectionError("redis unavailable")
        self.store[key] = value
        return True

    async def get(self, key: str) -> str | None:
        return self.store.get(key)

    async def delete(self, key: str) -> int:
        return 1 if self.store.pop(key, None) is not None else 0

    async def ping(self) -> bool:
        return True

    async def aclose(self) -> None:
        self.closed = True


class FakeRestClient:
    """In-memory PostgREST stand-in with the SupabaseRestClient surface."""

    CHILDREN = ("interactions", "financials", "alerts", "internal_notes")

    def __init__(self):
        self.tables: dict[str, list[dict]] = {"contacts": [], **{t: [] for t in self.CHILDREN}}
        self.fail: set[str] = set()
        self.select_calls = 0
        self.calls: list[tuple] = []
        self.access_token: str | None = None
        self._ids = itertools.count(1)

    def set_access_token(self, token):
        self.access_token = token

    async def close(self):
        pass

    def _check(self, operation: str):
        if operation in self.fail:
            raise SupabaseError(f"{operation} failed", status_code=500, operation=operation)

    async def select_contacts(self):
        self._check("select_contacts")
        self.select_calls += 1
        rows = []
        for contact in sorted(self.tables["contacts"], key=lambda c: c["created_at"], reverse=True):
            row = dict(contact)
            for child in self.CHILDREN:
                row[child] = [r for r in self.tables[child] if r["contact_id"] == contact["id"]]
            rows.append(row)
        return rows

    async def insert(self, table, values):
        self._check(f"insert_{table}")
        row = {"id": f"{table}-{next(self._ids)}", "created_at": "2024-01-01T00:00:00+00:00", **values}
        self.tables[table].append(row)
        self.calls.append(("insert", table, values))
        return row

    async def update(self, table, record_id, values):
        self._check(f"update_{table}")
        for row in self.tables[table]:
            if row["id"] == record_id:
                row.update(values)
                self.calls.append(("update", table, record_id, values))
                return dict(row)
        raise SupabaseError("No row affected", status_code=200, operation=f"update_{table}")

    async def delete(self, table, record_id):
        self._check(f"delete_{table}")
        self.tables[table] = [r for r in self.tables[table] if r["id"] != record_id]
        self.calls.append(("delete", table, record_id))


class FakeChangeFeed:
    def __init__(self):
        self.callback = None
        self.tables: list[str] = []
        self.subscribe_calls = 0
        self.unsubscribe_calls = 0

    async def subscribe(self, tables, callback):
        self.subscribe_calls += 1
        self.tables = tables
        self.callback = callback

    async def unsubscribe(self):
        self.unsubscribe_calls += 1
        self.callback = None

    def set_access_token(self, token):
        pass

    def push(self, table: str, event_type: str = "UPDATE"):
        self.callback(ChangeEvent(table=table, event_type=event_type))


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture
def storage(fake_redis):
    return LocalStorage(client=fake_redis)


@pytest.fixture
def fake_rest():
    return FakeRestClient()


@pytest.fixture
def fake_feed():
    return FakeChangeFeed()


@pytest.fixture
def admin_session():
    return Session(user_id="default-user", email="admin@nexus.com")


@pytest.fixture
def offline_advisor(monkeypatch):
    monkeypatch.setattr(settings, "OPENAI_API_KEY", None)
    return AdvisorService()


@pytest.fixture
def local_store(storage):
    ids = itertools.count(1)
    return LocalContactStore(storage, id_factory=lambda: f"id-{next(ids)}")


@pytest_asyncio.fixture
async def loaded_local_store(local_store, admin_session):
    local_store.set_session(admin_session)
    await local_store.load()
    return local_store


@pytest.fixture
def local_context(storage, local_store, offline_advisor):
    return AppContext(storage, LocalAuthProvider(storage), local_store, offline_advisor)


@pytest.fixture
def fixed_today():
    return date(2024, 1, 1)
