# SPDX-FileCopyrightText: 2025 Roland Knall <rknall@gmail.com>
# SPDX-License-Identifier: GPL-2.0-only
"""create_rate_tables

Revision ID: 3f1c2a7d9b40
Revises:
Create Date: 2026-10-17 09:12:41.208113

"""

from collections.abc import Sequence

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "3f1c2a7d9b40"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    # Latest rate per pair
    op.create_table(
        "exchange_rates",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("base_asset", sa.String(length=10), nullable=False),
        sa.Column("quote_currency", sa.String(length=10), nullable=False),
        sa.Column("rate", sa.String(length=64), nullable=False),
        sa.Column("observed_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "base_asset", "quote_currency", name="uq_exchange_rate_pair"
        ),
    )

    # Append-only history
    op.create_table(
        "rate_history",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("base_asset", sa.String(length=10), nullable=False),
        sa.Column("rates", sa.JSON(), nullable=False),
        sa.Column("recorded_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        op.f("ix_rate_history_recorded_at"),
        "rate_history",
        ["recorded_at"],
        unique=False,
    )


def downgrade() -> None:
    op.drop_index(op.f("ix_rate_history_recorded_at"), table_name="rate_history")
    op.drop_table("rate_history")
    op.drop_table("exchange_rates")
