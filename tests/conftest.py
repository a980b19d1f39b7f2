"""Pytest configuration for test isolation.

``db.client`` keeps one shared engine per process and refuses to rebind it to
a different ``DATABASE_URL``. Each test gets its own SQLite file, so the
shared engine is reset around every test, and ``DATABASE_URL`` from the
developer's shell never leaks into the suite.
"""

from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path

import pytest
from db.client import reset_engine

from tests.helpers.db import bootstrap_sqlite_db


@pytest.fixture(autouse=True)
def _isolate_engine(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    monkeypatch.delenv("DATABASE_URL", raising=False)
    reset_engine()
    yield
    reset_engine()


@pytest.fixture
def db_url(tmp_path: Path) -> str:
    """URL of a freshly bootstrapped, empty ledger database."""

    return bootstrap_sqlite_db(tmp_path / "ledger.db")
