# tests/conftest.py

from __future__ import annotations

import os
import time
from datetime import date

import pytest

from sync.config import SyncConfig

from .fakes import FakeCalendar, FakeNotion

TODAY = date(2026, 10, 18)


@pytest.fixture()
def config() -> SyncConfig:
    """Settings pinned to UTC so "today" and due dates are deterministic."""
    return SyncConfig(
        notion_token="secret_test",
        database_id="db123",
        calendar_id="primary",
        time_zone="UTC",
    )


@pytest.fixture()
def new_york_local():
    """Process local zone set to America/New_York (EDT until Nov 1, EST after)."""
    if not hasattr(time, "tzset"):
        pytest.skip("time.tzset is not available on this platform")
    saved = os.environ.get("TZ")
    os.environ["TZ"] = "America/New_York"
    time.tzset()
    yield
    if saved is None:
        del os.environ["TZ"]
    else:
        os.environ["TZ"] = saved
    time.tzset()


@pytest.fixture()
def today() -> date:
    return TODAY


@pytest.fixture()
def notion() -> FakeNotion:
    return FakeNotion()


@pytest.fixture()
def calendar() -> FakeCalendar:
    return FakeCalendar()
