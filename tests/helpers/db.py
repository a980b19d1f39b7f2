"""DB helpers for tests: bootstrap a temporary SQLite ledger database."""

from __future__ import annotations

from datetime import UTC, datetime
from pathlib import Path

from db import Base
from db.client import get_engine, session_scope
from db.models.ledger import LedgerTransaction
from sqlalchemy import event
from sqlalchemy import text as sql_text


def bootstrap_sqlite_db(db_file: Path) -> str:
    """Create a SQLite database file, initialize the schema, and return the URL.

    A file-backed database lets the API's worker threads and the test body see
    the same state (in-memory SQLite DBs are per-connection by default).
    """

    url = f"sqlite+pysqlite:///{db_file}"
    db_file.parent.mkdir(parents=True, exist_ok=True)
    engine = get_engine(database_url=url)

    # Provide a `now()` shim so server_default=now() works on SQLite
    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_conn, _):  # pragma: no cover - tiny bridge
        dbapi_conn.create_function(
            "now", 0, lambda: datetime.now(UTC).strftime("%Y-%m-%d %H:%M:%S")
        )

    Base.metadata.create_all(bind=engine)
    _assert_transactions_schema_in_sync(url)
    return url


def count_transactions(database_url: str) -> int:
    with session_scope(database_url=database_url) as session:
        return session.query(LedgerTransaction).count()


def _assert_transactions_schema_in_sync(database_url: str) -> None:
    """ORM columns match the SQLite table and the idempotency index exists."""

    expected = {c.name for c in LedgerTransaction.__table__.columns}
    with session_scope(database_url=database_url) as session:
        rows = session.execute(
            sql_text("PRAGMA table_info('ledger_transactions')")
        ).fetchall()
        got = {row[1] for row in rows}  # (cid, name, type, notnull, dflt_value, pk)
        indexes = session.execute(
            sql_text("PRAGMA index_list('ledger_transactions')")
        ).fetchall()
        unique_indexes = {row[1] for row in indexes if row[2]}  # (seq, name, unique, ...)
    missing = expected - got
    extra = got - expected
    assert not missing and not extra, (
        f"ledger_transactions schema drift: missing={missing or '∅'}, extra={extra or '∅'}"
    )
    assert "uniq_ledger_tx_idempotency_key" in unique_indexes, unique_indexes
