# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Configuration package for RiskWatch.

Example:
    >>> from riskwatch.core.config import get_settings
    >>> settings = get_settings()
    >>> print(settings.environment)
    'development'
"""

from riskwatch.core.config.settings import (
    APISettings,
    DatabaseSettings,
    PushSettings,
    RedisSettings,
    RiskScanSettings,
    Settings,
    WorkerSettings,
    clear_settings_cache,
    get_settings,
)

__all__ = [
    # Settings
    "Settings",
    "get_settings",
    "clear_settings_cache",
    # Subsettings
    "DatabaseSettings",
    "RedisSettings",
    "PushSettings",
    "RiskScanSettings",
    "APISettings",
    "WorkerSettings",
]
