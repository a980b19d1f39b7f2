# ruff: noqa: I001
"""Ledger core table with idempotency index.

Revision ID: 0001_ledger_core
Revises: None
Create Date: 2026-10-18
"""

from __future__ import annotations

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op


# revision identifiers, used by Alembic.
revision: str = "0001_ledger_core"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "ledger_transactions",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column("owner_id", sa.String(), nullable=False),
        sa.Column("kind", sa.String(), nullable=False),
        sa.Column("amount", sa.Numeric(18, 2), nullable=False),
        sa.Column("category", sa.Text(), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("occurred_on", sa.Date(), nullable=False),
        sa.Column("idempotency_key", sa.String(), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
        sa.CheckConstraint("kind in ('income','expense')", name="ck_ledger_tx_kind"),
        sa.CheckConstraint("amount > 0", name="ck_ledger_tx_amount_positive"),
        sa.CheckConstraint("length(category) > 0", name="ck_ledger_tx_category_nonempty"),
        sa.CheckConstraint(
            "length(description) > 0", name="ck_ledger_tx_description_nonempty"
        ),
    )

    # Retried creates are deduplicated on this index; rows without a key never conflict.
    op.create_index(
        "uniq_ledger_tx_idempotency_key",
        "ledger_transactions",
        ["idempotency_key"],
        unique=True,
        postgresql_where=sa.text("idempotency_key IS NOT NULL"),
        sqlite_where=sa.text("idempotency_key IS NOT NULL"),
    )
    op.create_index(
        "ix_ledger_transactions_owner_id", "ledger_transactions", ["owner_id"], unique=False
    )


def downgrade() -> None:
    op.drop_index("ix_ledger_transactions_owner_id", table_name="ledger_transactions")
    op.drop_index("uniq_ledger_tx_idempotency_key", table_name="ledger_transactions")
    op.drop_table("ledger_transactions")
