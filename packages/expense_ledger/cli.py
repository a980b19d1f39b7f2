# ruff: noqa: I001
"""CLI for the ``expense_ledger`` package.

Typer-based console interface over the same store and aggregation functions
the HTTP API uses. Environment variables (notably ``DATABASE_URL``) are loaded
from a local ``.env`` with ``python-dotenv`` before any command runs, and
logging is configured once at startup.
"""

from __future__ import annotations

from datetime import date
from pathlib import Path
from typing import Annotated

import typer
from dotenv import load_dotenv
from rich.console import Console
from rich.table import Table

from .logging_setup import bound_principal, configure_logging

app = typer.Typer(
    name="expense-ledger",
    no_args_is_help=True,
    add_completion=False,
    help="Record income/expense transactions and summarize spending.",
)
console = Console()

DatabaseUrl = Annotated[
    str | None,
    typer.Option("--database-url", help="Override DATABASE_URL (falls back to env var)."),
]
Owner = Annotated[str, typer.Option("--owner", help="Owner identity the records belong to.")]


def _fail(message: str) -> typer.Exit:
    console.print(f"[red]Error:[/red] {message}")
    return typer.Exit(1)


@app.command("init-db")
def init_db_cmd(database_url: DatabaseUrl = None) -> None:
    """Create the ledger tables on a fresh database (use Alembic in production)."""

    from db import metadata
    from db.client import get_engine

    try:
        metadata.create_all(bind=get_engine(database_url=database_url))
    except RuntimeError as e:
        raise _fail(str(e)) from None
    console.print("[green]Ledger tables are ready.[/green]")


@app.command("add")
def add_cmd(
    owner: Owner,
    amount: Annotated[str, typer.Option(help="Positive decimal amount, e.g. 12.50")],
    category: Annotated[str, typer.Option(help="Free-form category label")],
    description: Annotated[str, typer.Option(help="What the transaction was for")],
    kind: Annotated[str, typer.Option(help="income or expense")] = "expense",
    on: Annotated[
        str | None, typer.Option("--date", help="ISO date (defaults to today)")
    ] = None,
    idempotency_key: Annotated[
        str | None, typer.Option(help="Client token that makes retries safe")
    ] = None,
    database_url: DatabaseUrl = None,
) -> None:
    """Record one transaction."""

    from db.client import session_scope
    from .errors import LedgerError, ValidationError
    from .store import create_transaction

    fields = {
        "amount": amount,
        "category": category,
        "description": description,
        "kind": kind,
        "date": on or date.today().isoformat(),
    }
    try:
        with bound_principal(owner), session_scope(database_url=database_url) as session:
            result = create_transaction(
                session, owner_id=owner, fields=fields, idempotency_key=idempotency_key
            )
    except ValidationError as e:
        raise _fail("; ".join(f"{k}: {v}" for k, v in e.errors.items())) from None
    except (LedgerError, RuntimeError) as e:
        raise _fail(str(e)) from None

    tx = result.transaction
    verb = "Created" if result.created else "Already recorded"
    console.print(f"{verb} #{tx.id}: {tx.kind} {tx.amount.to_display()} ({tx.category})")


@app.command("list")
def list_cmd(
    owner: Owner,
    category: Annotated[str | None, typer.Option(help="Exact category match")] = None,
    kind: Annotated[str | None, typer.Option(help="income or expense")] = None,
    sort: Annotated[
        str | None, typer.Option(help="date_desc or date_asc (default: newest first)")
    ] = None,
    search: Annotated[
        str | None, typer.Option(help="Case-insensitive text in description/category/kind")
    ] = None,
    database_url: DatabaseUrl = None,
) -> None:
    """Show transactions newest first, or in an explicit ``--sort`` order."""

    from db.client import session_scope
    from .errors import LedgerError
    from .models import SORT_ORDERS, ListFilters
    from .query import browse
    from .query import search as search_rows
    from .store import list_transactions

    filters = ListFilters(category=category, kind=kind, sort=sort)
    try:
        with session_scope(database_url=database_url) as session:
            rows = list_transactions(session, owner_id=owner, filters=filters)
    except (LedgerError, RuntimeError) as e:
        raise _fail(str(e)) from None

    rows = search_rows(rows, search) if sort in SORT_ORDERS else browse(rows, search)
    if not rows:
        console.print("No matching transactions found.")
        return

    table = Table(title=f"Transactions for {owner}")
    table.add_column("ID", justify="right")
    table.add_column("Date")
    table.add_column("Kind")
    table.add_column("Category")
    table.add_column("Description")
    table.add_column("Amount", justify="right")
    for t in rows:
        table.add_row(
            str(t.id),
            t.occurred_on.isoformat(),
            t.kind,
            t.category,
            t.description,
            t.amount.to_display(),
        )
    console.print(table)


@app.command("summary")
def summary_cmd(owner: Owner, database_url: DatabaseUrl = None) -> None:
    """Print income, expenses, net balance and spending by category."""

    from db.client import session_scope
    from .aggregation import summarize
    from .errors import LedgerError
    from .store import list_transactions

    try:
        with session_scope(database_url=database_url) as session:
            rows = list_transactions(session, owner_id=owner)
    except (LedgerError, RuntimeError) as e:
        raise _fail(str(e)) from None

    s = summarize(rows)
    console.print(f"Total Income:   {s.total_income.to_display()}")
    console.print(f"Total Expenses: {s.total_expense.to_display()}")
    console.print(f"Net Balance:    {s.net_balance.to_display()}")
    if not s.categories:
        console.print("No expense data available yet.")
        return

    table = Table(title="Spending by category")
    table.add_column("Category")
    table.add_column("Total", justify="right")
    table.add_column("Share", justify="right")
    for share in s.categories:
        table.add_row(share.category, share.total.to_display(), f"{share.percent:.1f}%")
    console.print(table)


@app.command("delete")
def delete_cmd(
    owner: Owner,
    tx_id: Annotated[int, typer.Argument(help="Transaction id")],
    database_url: DatabaseUrl = None,
) -> None:
    """Permanently remove one of the owner's transactions."""

    from db.client import session_scope
    from .errors import LedgerError, NotFoundError, UnauthorizedError
    from .store import delete_transaction

    try:
        with bound_principal(owner), session_scope(database_url=database_url) as session:
            delete_transaction(session, tx_id, owner_id=owner)
    except NotFoundError:
        raise _fail(f"transaction {tx_id} not found") from None
    except UnauthorizedError:
        raise _fail(f"transaction {tx_id} is not owned by {owner}") from None
    except (LedgerError, RuntimeError) as e:
        raise _fail(str(e)) from None
    console.print(f"Transaction {tx_id} removed.")


@app.command("serve")
def serve_cmd(
    host: Annotated[str, typer.Option(help="Bind address")] = "127.0.0.1",
    port: Annotated[int, typer.Option(envvar="PORT", help="Bind port")] = 5001,
    database_url: DatabaseUrl = None,
) -> None:
    """Run the HTTP API with uvicorn, logging through the ledger handler."""

    import uvicorn

    from .logging_setup import adopt_loggers
    from .web import create_app

    adopt_loggers("uvicorn")
    uvicorn.run(create_app(database_url=database_url), host=host, port=port, log_config=None)


@app.callback()
def _root(
    log_level: Annotated[
        str | None,
        typer.Option(help="Log level (falls back to EXPENSE_LEDGER_LOG_LEVEL, then INFO)."),
    ] = None,
) -> None:
    """Load ``.env`` (without overriding set variables) and configure logging."""

    load_dotenv(dotenv_path=Path.cwd() / ".env", override=False)
    configure_logging(log_level)


def main() -> None:  # pragma: no cover - console script shim
    app()


if __name__ == "__main__":  # pragma: no cover
    main()
