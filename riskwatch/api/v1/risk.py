# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Risk detection API endpoints.

This module provides operator endpoints for the risk pipeline:
- POST /courses/{course_id}/risk-notifications - Scan a course now or enqueue a scan
- GET /courses/{course_id}/risk-assessments - Preview assessments without notifying

Example:
    POST /api/v1/courses/3f2c.../risk-notifications?background=true
"""

import logging
from datetime import datetime

from fastapi import APIRouter, HTTPException, Query, Response, status
from pydantic import BaseModel, Field

from riskwatch.api.dependencies import OperatorKey, RiskService, ScanEnqueuer
from riskwatch.core.risk.classifier import RiskAssessment
from riskwatch.core.risk.exceptions import NotFoundError, TransientStoreError

logger = logging.getLogger(__name__)

router = APIRouter()


# ============================================================================
# Response Models
# ============================================================================


class RiskRunSummaryResponse(BaseModel):
    """Summary of a completed course scan."""

    course_id: str = Field(description="Course scanned")
    total: int = Field(description="Enrolled students considered")
    notified: int = Field(description="Students notified in this run")
    skipped_low: int = Field(description="Students classified LOW")
    skipped_throttled: int = Field(description="Students inside the 7-day window")
    failed: int = Field(description="Students whose evaluation failed")
    timed_out: bool = Field(description="Whether the course timeout was hit")
    started_at: datetime | None = Field(description="Evaluation instant")
    finished_at: datetime | None = Field(description="Completion time")
    duration_seconds: float = Field(description="Run duration")


class RiskScanQueuedResponse(BaseModel):
    """Acknowledgement of an enqueued scan."""

    course_id: str = Field(description="Course to scan")
    message_id: str | None = Field(None, description="Dramatiq message id")
    status: str = Field("queued", description="Queue status")


class RiskSignalsResponse(BaseModel):
    """Raw signal values."""

    inactivity_days: int
    completion_ratio: float
    missed_deadlines: int
    engagement_score: float


class RiskAssessmentResponse(BaseModel):
    """Risk assessment of one student."""

    student_id: str
    risk_tier: str = Field(description="LOW, MEDIUM or HIGH")
    score: int = Field(description="Weighted risk score")
    triggered_factors: list[str] = Field(description="Contributing factors in order")
    signals: RiskSignalsResponse
    last_notified: datetime | None = None

    @classmethod
    def from_assessment(cls, assessment: RiskAssessment) -> "RiskAssessmentResponse":
        """Build the response model from a domain assessment."""
        return cls(
            student_id=assessment.student_id,
            risk_tier=assessment.tier.value,
            score=assessment.score,
            triggered_factors=[f.value for f in assessment.factors],
            signals=RiskSignalsResponse(**assessment.signals.to_dict()),
            last_notified=assessment.last_notified,
        )


class CourseRiskAssessmentsResponse(BaseModel):
    """All assessments of a course."""

    course_id: str
    assessments: list[RiskAssessmentResponse]
    at_risk_count: int = Field(description="Assessments above LOW")


# ============================================================================
# Endpoints
# ============================================================================


@router.post(
    "/{course_id}/risk-notifications",
    response_model=RiskRunSummaryResponse | RiskScanQueuedResponse,
    summary="Scan a course for at-risk students",
    responses={
        202: {"model": RiskScanQueuedResponse, "description": "Scan enqueued"},
        404: {"description": "Course not found"},
    },
)
async def trigger_risk_notifications(
    course_id: str,
    response: Response,
    service: RiskService,
    enqueue: ScanEnqueuer,
    _: OperatorKey,
    background: bool = Query(False, description="Enqueue instead of scanning inline"),
) -> RiskRunSummaryResponse | RiskScanQueuedResponse:
    """Run the risk pipeline for a course.

    Inline runs return the summary. Background runs return 202 with the
    queued message id.
    """
    if background:
        message = enqueue(course_id)
        response.status_code = status.HTTP_202_ACCEPTED
        logger.info("Risk scan enqueued for course %s", course_id)
        return RiskScanQueuedResponse(
            course_id=course_id,
            message_id=getattr(message, "message_id", None),
        )

    try:
        summary = await service.process_risk_notifications(course_id)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=e.message) from e
    except TransientStoreError as e:
        logger.error("Risk scan for course %s failed: %s", course_id, e)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Data store unavailable",
        ) from e

    return RiskRunSummaryResponse(**summary.to_dict())


@router.get(
    "/{course_id}/risk-assessments",
    response_model=CourseRiskAssessmentsResponse,
    summary="Preview risk assessments",
    responses={404: {"description": "Course not found"}},
)
async def get_risk_assessments(
    course_id: str,
    service: RiskService,
    _: OperatorKey,
) -> CourseRiskAssessmentsResponse:
    """Assess every enrolled student without notifying anyone."""
    try:
        assessments = await service.assess_course(course_id)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=e.message) from e
    except TransientStoreError as e:
        logger.error("Risk assessment for course %s failed: %s", course_id, e)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Data store unavailable",
        ) from e

    items = [RiskAssessmentResponse.from_assessment(a) for a in assessments]
    return CourseRiskAssessmentsResponse(
        course_id=course_id,
        assessments=items,
        at_risk_count=sum(1 for item in items if item.risk_tier != "LOW"),
    )
