"""Pydantic request/response schemas for the API."""

from app.schemas.health import HealthResponse
from app.schemas.password_reset import (
    PasswordSubmission,
    TokenRequest,
    TokenSubmission,
    WorkflowResponse,
)

__all__ = [
    "HealthResponse",
    "PasswordSubmission",
    "TokenRequest",
    "TokenSubmission",
    "WorkflowResponse",
]
