# SPDX-FileCopyrightText: 2025 Roland Knall <rknall@gmail.com>
# SPDX-License-Identifier: GPL-2.0-only
"""Main API router."""

from fastapi import APIRouter

from coinrate.api.v1 import history, prices

api_router = APIRouter()

# Price and conversion routes
api_router.include_router(prices.router, tags=["prices"])

# History routes
api_router.include_router(history.router, tags=["history"])
