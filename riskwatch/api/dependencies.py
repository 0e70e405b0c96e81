# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""FastAPI dependencies for the operator API.

Usage:
    @router.post("/courses/{course_id}/risk-notifications")
    async def trigger_scan(
        course_id: str,
        service: RiskService,
        _: OperatorKey,
    ):
        ...
"""

import logging
import secrets
from collections.abc import Callable
from typing import Annotated, Any

from fastapi import Depends, Header, HTTPException, Request, status

from riskwatch.core.config import get_settings
from riskwatch.core.risk.service import RiskDetectionService, create_risk_detection_service
from riskwatch.infrastructure.database.connection import (
    DatabaseError,
    DatabaseManager,
    get_database_manager,
)
from riskwatch.infrastructure.notifications.channels.base import BaseChannel
from riskwatch.infrastructure.notifications.channels.push import NullPushChannel
from riskwatch.infrastructure.telemetry.metrics import get_risk_metrics

logger = logging.getLogger(__name__)


def require_operator(
    x_api_key: Annotated[str | None, Header(alias="X-API-Key")] = None,
) -> str:
    """Require a valid operator API key.

    Args:
        x_api_key: Value of the X-API-Key header.

    Returns:
        The accepted key.

    Raises:
        HTTPException: 401 if the header is missing or wrong.
    """
    expected = get_settings().api.operator_api_key.get_secret_value()
    if not x_api_key or not secrets.compare_digest(x_api_key, expected):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or missing API key",
            headers={"WWW-Authenticate": "ApiKey"},
        )
    return x_api_key


def get_db_manager() -> DatabaseManager:
    """Get the application's database manager.

    Raises:
        HTTPException: 503 if the database is not initialized.
    """
    try:
        return get_database_manager()
    except DatabaseError as e:
        logger.error("Database manager unavailable: %s", e)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Database not available",
        ) from e


def get_push_channel(request: Request) -> BaseChannel:
    """Get the push channel created at startup, or a no-op channel."""
    return getattr(request.app.state, "push_channel", None) or NullPushChannel()


def get_risk_service(
    db_manager: Annotated[DatabaseManager, Depends(get_db_manager)],
    push_channel: Annotated[BaseChannel, Depends(get_push_channel)],
) -> RiskDetectionService:
    """Build the risk detection service for a request."""
    return create_risk_detection_service(
        db_manager,
        push_channel,
        settings=get_settings(),
        metrics=get_risk_metrics(),
    )


def get_scan_enqueuer() -> Callable[[str], Any]:
    """Get the callable that enqueues a background course scan.

    Returns:
        The actor's send method; calling it returns the Dramatiq message.
    """
    from riskwatch.infrastructure.background.tasks import (
        process_course_risk_notifications,
    )

    return process_course_risk_notifications.send


# Type aliases for cleaner dependency injection
OperatorKey = Annotated[str, Depends(require_operator)]
RiskService = Annotated[RiskDetectionService, Depends(get_risk_service)]
ScanEnqueuer = Annotated[Callable[[str], Any], Depends(get_scan_enqueuer)]
