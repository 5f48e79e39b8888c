# SPDX-FileCopyrightText: 2025 Roland Knall <rknall@gmail.com>
# SPDX-License-Identifier: GPL-2.0-only
"""Database models package."""

from coinrate.models.base import Base
from coinrate.models.exchange_rate import ExchangeRate
from coinrate.models.rate_history import RateHistory

__all__ = [
    "Base",
    "ExchangeRate",
    "RateHistory",
]
