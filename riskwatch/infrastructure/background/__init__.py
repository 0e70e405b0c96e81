# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Background processing: Dramatiq broker, risk scan actors and scheduler.

Actors live in riskwatch.infrastructure.background.tasks; importing that
package configures the broker.
"""

from riskwatch.infrastructure.background.broker import (
    Priority,
    Queues,
    get_broker,
    setup_dramatiq,
    shutdown_dramatiq,
)

__all__ = [
    "Priority",
    "Queues",
    "get_broker",
    "setup_dramatiq",
    "shutdown_dramatiq",
]
