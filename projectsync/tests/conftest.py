"""
Pytest configuration and shared fixtures for the projectsync tests.
"""
import os
import tempfile
import uuid
from typing import Any, Dict, List, Optional

import pytest

from projectsync.config.app_config import AppConfig, CacheConfig, IdentifierConfig, RemoteStoreConfig
from projectsync.errors import RemoteUnavailableError
from projectsync.sync.local_cache import LocalCacheStore
from projectsync.sync.remote_store import RemoteStore
from projectsync.sync.sync_coordinator import SyncCoordinator


class FakeRemoteStore(RemoteStore):
    """
    In-memory RemoteStore with per-operation failure switches.

    Set ``fail`` to a set of method names (e.g. {"insert"}) or ``offline``
    to True to make calls raise RemoteUnavailableError.
    """

    label = "fake"

    def __init__(self):
        self.rows: List[Dict[str, Any]] = []
        self.serials: Dict[str, int] = {}
        self.organizations: List[Dict[str, Any]] = [{"id": "org-1", "name": "Acme"}]
        self.fail = set()
        self.offline = False
        self.calls: List[str] = []
        self._next_id = 0
        self.closed = False

    def _check(self, operation: str) -> None:
        self.calls.append(operation)
        if self.offline or operation in self.fail:
            raise RemoteUnavailableError(f"{operation} unavailable")

    def _find(self, record_id: str) -> Optional[Dict[str, Any]]:
        for row in self.rows:
            if row.get("id") == record_id or row.get("custom_uuid") == record_id:
                return row
        return None

    async def fetch_all(self):
        self._check("fetch_all")
        return [dict(row) for row in self.rows]

    async def fetch_all_ordered(self):
        self._check("fetch_all_ordered")
        return [dict(row) for row in sorted(self.rows, key=lambda row: row["created_at"], reverse=True)]

    async def fetch_by_id(self, record_id):
        self._check("fetch_by_id")
        row = self._find(record_id)
        return dict(row) if row else None

    async def insert(self, row):
        self._check("insert")
        self._next_id += 1
        created = dict(row)
        created["id"] = f"remote-{self._next_id}"
        created["created_at"] = f"2024-01-01T00:00:{self._next_id:02d}+00:00"
        created["updated_at"] = created["created_at"]
        self.rows.append(created)
        return dict(created)

    async def update_by_id(self, record_id, patch):
        self._check("update_by_id")
        row = self._find(record_id)
        if row is None:
            return None
        row.update(patch)
        row["updated_at"] = "2024-02-01T00:00:00+00:00"
        return dict(row)

    async def delete_by_id(self, record_id):
        self._check("delete_by_id")
        row = self._find(record_id)
        if row is None:
            return False
        self.rows.remove(row)
        return True

    async def next_serial_number(self, classification):
        self._check("next_serial_number")
        self.serials[classification] = self.serials.get(classification, 0) + 1
        return self.serials[classification]

    async def list_organizations(self):
        self._check("list_organizations")
        return list(self.organizations)

    async def ping(self):
        return not self.offline

    async def close(self):
        self.closed = True


@pytest.fixture
def cache():
    """In-memory local cache."""
    store = LocalCacheStore(":memory:")
    yield store
    store.close()


@pytest.fixture
def remote():
    """In-memory remote store that is reachable until told otherwise."""
    return FakeRemoteStore()


@pytest.fixture
def coordinator(cache, remote):
    """Coordinator wired to the in-memory cache and fake remote store."""
    return SyncCoordinator(cache, remote)


@pytest.fixture
def temp_cache_path():
    """Temporary file path for a file-backed cache."""
    temp_path = os.path.join(tempfile.gettempdir(), f"test_cache_{uuid.uuid4().hex}.db")

    yield temp_path

    if os.path.exists(temp_path):
        os.unlink(temp_path)


@pytest.fixture
def test_app_config():
    """Application configuration pointing at an in-memory cache."""
    return AppConfig(
        cache=CacheConfig(path=":memory:"),
        remote=RemoteStoreConfig(endpoint="http://localhost:8000", api_key="test-api-key", max_retries=1),
        identifiers=IdentifierConfig(prefix="WV", serial_width=4)
    )


@pytest.fixture
def sample_project():
    """Project input as the client form submits it."""
    return {
        "projectName": "Recommendation Engine",
        "projectDescription": "Personalized suggestions for the storefront",
        "clientName": "Acme",
        "status": "active",
        "startDate": "2024-01-10",
        "endDate": "2024-06-30",
        "techStack": ["React", "Tailwind"],
        "teamAssignments": [
            {"email": "a@x.com", "roles": ["AI Engineer", "Lead"]},
            {"email": "b@x.com", "roles": []},
        ],
    }
