# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Database infrastructure: connection management, models and repositories."""

from riskwatch.infrastructure.database.connection import (
    DatabaseError,
    DatabaseManager,
    close_database,
    get_database_manager,
    get_worker_db_manager,
    init_database,
)

__all__ = [
    "DatabaseError",
    "DatabaseManager",
    "init_database",
    "close_database",
    "get_database_manager",
    "get_worker_db_manager",
]
