# SPDX-FileCopyrightText: 2025 Roland Knall <rknall@gmail.com>
# SPDX-License-Identifier: GPL-2.0-only
"""Append-only log of complete rate observations."""

from datetime import datetime

from sqlalchemy import JSON, DateTime, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from coinrate.models.base import Base, utcnow


class RateHistory(Base):
    """One refresh cycle's rates for every configured quote currency.

    ``rates`` maps quote currency codes to decimal strings, e.g.
    ``{"USD": "50000.00", "EUR": "45000.12"}``.
    """

    __tablename__ = "rate_history"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    base_asset: Mapped[str] = mapped_column(String(10), nullable=False)
    rates: Mapped[dict[str, str]] = mapped_column(JSON, nullable=False)
    recorded_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=utcnow, index=True
    )
