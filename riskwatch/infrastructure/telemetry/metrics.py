# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Prometheus metrics for risk scans.

A student who should have been alerted but was not leaves no trace in
the notifications table, so the per-outcome counters here are the
primary way to notice a degraded scan.

Metrics Collected:
- riskwatch_risk_students_total: Students evaluated, by outcome
- riskwatch_risk_push_total: Real-time push attempts, by status
- riskwatch_risk_scans_total: Course scans, by status
- riskwatch_risk_scan_duration_seconds: Course scan duration histogram

Usage:
    from riskwatch.infrastructure.telemetry import get_risk_metrics

    metrics = get_risk_metrics()
    metrics.record_summary(summary)
"""

import logging
from typing import TYPE_CHECKING

from prometheus_client import REGISTRY, CollectorRegistry, Counter, Histogram

if TYPE_CHECKING:
    from riskwatch.core.risk.service import RiskRunSummary

logger = logging.getLogger(__name__)

_risk_metrics: "RiskMetrics | None" = None


class RiskMetrics:
    """Counters and histograms describing risk scan outcomes.

    Attributes:
        registry: Prometheus registry the metrics are registered in.
    """

    STUDENT_OUTCOMES = ("notified", "skipped_low", "skipped_throttled", "failed")

    def __init__(
        self,
        registry: CollectorRegistry | None = None,
        namespace: str = "riskwatch",
    ) -> None:
        """Initialize metrics.

        Args:
            registry: Prometheus registry (default: global REGISTRY).
            namespace: Metrics namespace prefix.
        """
        self.registry = registry or REGISTRY

        self.students_total = Counter(
            f"{namespace}_risk_students_total",
            "Students evaluated by the risk scan",
            ["outcome"],
            registry=self.registry,
        )

        self.push_total = Counter(
            f"{namespace}_risk_push_total",
            "Real-time push attempts for risk notifications",
            ["status"],
            registry=self.registry,
        )

        self.scans_total = Counter(
            f"{namespace}_risk_scans_total",
            "Course risk scans",
            ["status"],
            registry=self.registry,
        )

        self.scan_duration = Histogram(
            f"{namespace}_risk_scan_duration_seconds",
            "Course risk scan duration",
            buckets=[0.1, 0.5, 1.0, 5.0, 10.0, 30.0, 60.0, 120.0, 300.0, 600.0],
            registry=self.registry,
        )

        logger.debug("Risk metrics initialized with namespace: %s", namespace)

    def record_push(self, status: str) -> None:
        """Count one push attempt."""
        self.push_total.labels(status=status).inc()

    def record_summary(self, summary: "RiskRunSummary") -> None:
        """Record the outcome counts of one course scan.

        Args:
            summary: Completed run summary.
        """
        for outcome in self.STUDENT_OUTCOMES:
            count = getattr(summary, outcome)
            if count:
                self.students_total.labels(outcome=outcome).inc(count)

        self.scans_total.labels(status="timed_out" if summary.timed_out else "completed").inc()
        self.scan_duration.observe(summary.duration_seconds)


def get_risk_metrics() -> RiskMetrics:
    """Get the process-wide metrics instance.

    Returns:
        RiskMetrics registered in the default registry.
    """
    global _risk_metrics
    if _risk_metrics is None:
        _risk_metrics = RiskMetrics()
    return _risk_metrics
