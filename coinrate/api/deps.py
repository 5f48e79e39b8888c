# SPDX-FileCopyrightText: 2025 Roland Knall <rknall@gmail.com>
# SPDX-License-Identifier: GPL-2.0-only
"""API dependencies for dependency injection."""

from fastapi import Request

from coinrate.services.rate_service import RateService


def get_rate_service(request: Request) -> RateService:
    """Get the application's rate service."""
    return request.app.state.rate_service
