# SPDX-FileCopyrightText: 2025 Roland Knall <rknall@gmail.com>
# SPDX-License-Identifier: GPL-2.0-only
"""Exceptions raised by the rate services."""

from enum import Enum


class RateServiceError(Exception):
    """Base exception for rate service errors."""


class FetchErrorReason(str, Enum):
    """Why a price fetch failed."""

    NETWORK = "network"
    MALFORMED_RESPONSE = "malformed-response"
    RATE_LIMITED = "rate-limited"


class FetchError(RateServiceError):
    """The external price source could not provide rates."""

    def __init__(self, reason: FetchErrorReason, message: str) -> None:
        super().__init__(message)
        self.reason = reason

    def __str__(self) -> str:
        return f"[{self.reason.value}] {super().__str__()}"


class RateUnavailableError(RateServiceError):
    """No rate is cached and the fetch-on-miss did not produce one."""


class InvalidAmountError(RateServiceError):
    """Conversion amount is not a positive finite number."""


class NoRateDataError(RateServiceError):
    """No rate data is available to perform a conversion."""


class InvalidCurrencyError(RateServiceError):
    """Quote currency is not a three-letter alphabetic code."""
