# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""API v1 routes package.

Modules:
    risk: Course risk scans and assessment previews.
"""

from fastapi import APIRouter

from riskwatch.api.v1 import risk

# Create the main v1 router
router = APIRouter(prefix="/api/v1")

router.include_router(risk.router, prefix="/courses", tags=["Risk Detection"])

__all__ = ["router"]
