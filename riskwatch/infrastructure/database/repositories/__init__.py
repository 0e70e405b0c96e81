# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""SQL implementations of the risk pipeline's collaborators."""

from riskwatch.infrastructure.database.repositories.directory import (
    SQLAlchemyCourseDirectory,
)
from riskwatch.infrastructure.database.repositories.risk import SQLAlchemyRiskDataStore

__all__ = ["SQLAlchemyCourseDirectory", "SQLAlchemyRiskDataStore"]
