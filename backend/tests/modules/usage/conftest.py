"""
Pytest fixtures for usage module tests.
"""

from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest

from modules.usage.service import UsageService


@pytest.fixture
def now():
    """A fixed 'now' in the middle of March 2024 (UTC)."""
    return datetime(2024, 3, 15, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def usage_service(now):
    """In-memory usage service whose clock can be moved by tests."""
    clock = {"now": now}
    service = UsageService(clock=lambda: clock["now"])
    service.clock = clock
    return service


@pytest.fixture
def supabase_db():
    """Supabase client mock whose query chain ends in an awaitable execute()."""
    client = MagicMock()
    query = MagicMock()
    for method in ("select", "eq", "gte", "lt", "insert"):
        getattr(query, method).return_value = query
    query.execute = AsyncMock()
    client.table.return_value = query
    client.query = query
    return client
