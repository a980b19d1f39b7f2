from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import (
    BigInteger,
    CheckConstraint,
    Date,
    DateTime,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    text,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    pass


# ---------------------------
# Core: ledger_transactions
# ---------------------------


class LedgerTransaction(Base):
    __tablename__ = "ledger_transactions"

    # Autoincrement ids grow with creation order; display ordering relies on
    # this as the tie-break for records sharing the same ``occurred_on``.
    # SQLite only autoincrements an INTEGER PRIMARY KEY (rowid alias).
    id: Mapped[int] = mapped_column(
        BigInteger().with_variant(Integer, "sqlite"), primary_key=True, autoincrement=True
    )
    # Opaque principal identifier handed over by the auth layer. Written once
    # at creation; the store never updates it.
    owner_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
    kind: Mapped[str] = mapped_column(String, nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(18, 2), nullable=False)
    category: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    occurred_on: Mapped[date] = mapped_column(Date, nullable=False)
    # Uniqueness is enforced by a partial index (see __table_args__) so that
    # any number of rows may omit the key.
    idempotency_key: Mapped[str | None] = mapped_column(String, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=text("now()")
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=text("now()")
    )

    __table_args__ = (
        CheckConstraint("kind in ('income','expense')", name="ck_ledger_tx_kind"),
        CheckConstraint("amount > 0", name="ck_ledger_tx_amount_positive"),
        CheckConstraint("length(category) > 0", name="ck_ledger_tx_category_nonempty"),
        CheckConstraint("length(description) > 0", name="ck_ledger_tx_description_nonempty"),
        Index(
            "uniq_ledger_tx_idempotency_key",
            "idempotency_key",
            unique=True,
            postgresql_where=text("idempotency_key IS NOT NULL"),
            sqlite_where=text("idempotency_key IS NOT NULL"),
        ),
    )

    def __repr__(self) -> str:  # pragma: no cover - debugging aid
        return (
            f"LedgerTransaction(id={self.id!r}, owner_id={self.owner_id!r}, "
            f"kind={self.kind!r}, amount={self.amount!r}, occurred_on={self.occurred_on!r})"
        )


__all__ = [
    "Base",
    "LedgerTransaction",
]
