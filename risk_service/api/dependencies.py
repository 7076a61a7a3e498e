"""Dependency injection for FastAPI endpoints."""
from datetime import datetime, timezone

from fastapi import Request

from risk_service.config import Settings
from risk_service.services.assessment import AssessmentService


def get_request_id(request: Request) -> str:
    """Extract request ID from request state."""
    return getattr(request.state, "request_id", "unknown")


def get_assessment_service(request: Request) -> AssessmentService:
    """Provide the assessment service built at startup."""
    return request.app.state.assessment_service


def get_now() -> datetime:
    """Evaluation time for the request. Overridden in tests to pin the clock."""
    return datetime.now(timezone.utc)


def get_settings(request: Request) -> Settings:
    """Settings the app was built with."""
    return request.app.state.settings
