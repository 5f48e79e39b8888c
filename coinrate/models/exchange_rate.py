# SPDX-FileCopyrightText: 2025 Roland Knall <rknall@gmail.com>
# SPDX-License-Identifier: GPL-2.0-only
"""Latest exchange rate per currency pair."""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import DateTime, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from coinrate.models.base import Base, DecimalString


class ExchangeRate(Base):
    """Single current rate for a (base asset, quote currency) pair."""

    __tablename__ = "exchange_rates"
    __table_args__ = (
        UniqueConstraint("base_asset", "quote_currency", name="uq_exchange_rate_pair"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    base_asset: Mapped[str] = mapped_column(String(10), nullable=False)
    quote_currency: Mapped[str] = mapped_column(String(10), nullable=False)
    rate: Mapped[Decimal] = mapped_column(DecimalString, nullable=False)
    observed_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
