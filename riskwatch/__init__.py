"""RiskWatch.

At-risk student detection and notification engine: aggregates behavioral
signals per enrollment, classifies risk, and notifies students and
instructors through persisted and real-time channels.

Copyright (C) 2025 Global Digital Labs (gdlabs.io)
SPDX-License-Identifier: LGPL-3.0-or-later
"""

__version__ = "1.0.0"
