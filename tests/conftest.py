# Test fixtures and configuration
import io
import sys
import uuid
from datetime import datetime, timedelta, timezone
from pathlib import Path
from types import SimpleNamespace

import pytest
from PIL import Image

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from vto_backend.config import AppConfig
from vto_backend.services.history import HistoryService


class FakeQuery:
    """Minimal stand-in for the Supabase query builder over an in-memory table."""

    def __init__(self, db: "FakeSupabase", table: str):
        self.db = db
        self.table = table
        self.action = "select"
        self.payload = None
        self.filters = []
        self.ordering = None

    def select(self, columns="*"):
        self.action = "select"
        return self

    def insert(self, row):
        self.action = "insert"
        self.payload = row
        return self

    def update(self, values):
        self.action = "update"
        self.payload = values
        return self

    def delete(self):
        self.action = "delete"
        return self

    def eq(self, column, value):
        self.filters.append(lambda r: r.get(column) == value)
        return self

    def neq(self, column, value):
        self.filters.append(lambda r: r.get(column) != value)
        return self

    def order(self, column, desc=False):
        self.ordering = (column, desc)
        return self

    def _matches(self, row):
        return all(f(row) for f in self.filters)

    def execute(self):
        self.db.calls.append((self.table, self.action, self.payload))
        if self.db.fail:
            raise ConnectionError("connection refused")

        rows = self.db.tables.setdefault(self.table, [])

        if self.action == "insert":
            self.db.clock += timedelta(seconds=1)
            row = {
                "id": str(uuid.uuid4()),
                "created_at": self.db.clock.isoformat(),
                "metadata": None,
                **self.payload,
            }
            rows.append(row)
            return SimpleNamespace(data=[dict(row)])

        matched = [r for r in rows if self._matches(r)]

        if self.action == "update":
            for r in matched:
                r.update(self.payload)
        elif self.action == "delete":
            self.db.tables[self.table] = [r for r in rows if not self._matches(r)]

        if self.ordering:
            column, desc = self.ordering
            matched = sorted(matched, key=lambda r: r[column], reverse=desc)
        return SimpleNamespace(data=[dict(r) for r in matched])


class FakeSupabase:
    def __init__(self):
        self.tables = {}
        self.calls = []
        self.fail = False
        self.clock = datetime(2024, 1, 1, tzinfo=timezone.utc)

    def table(self, name):
        return FakeQuery(self, name)


@pytest.fixture
def fake_supabase():
    return FakeSupabase()


@pytest.fixture
def history_service(fake_supabase):
    return HistoryService(fake_supabase, table="tryon_history")


@pytest.fixture
def app_config():
    """Config with credentials filled in and a generous rate limit."""
    return AppConfig(
        _env_file=None,
        fal_ai_api_key="test-key",
        supabase_url=None,
        supabase_key=None,
        rate_limit_max_requests=1000,
        environment="production",
    )


@pytest.fixture
def png_bytes():
    """A valid 1x1 PNG image."""
    buf = io.BytesIO()
    Image.new("RGB", (1, 1), (255, 0, 0)).save(buf, format="PNG")
    return buf.getvalue()


@pytest.fixture
def person_url():
    return "https://images.pexels.com/photos/1040945/pexels-photo-1040945.jpeg"


@pytest.fixture
def garment_url():
    return "https://images.pexels.com/photos/1020585/pexels-photo-1020585.jpeg"
