# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Telemetry for RiskWatch."""

from riskwatch.infrastructure.telemetry.metrics import RiskMetrics, get_risk_metrics

__all__ = ["RiskMetrics", "get_risk_metrics"]
