"""Password reset API schemas."""

from pydantic import BaseModel, Field

from app.application.dtos.workflow import WorkflowResult
from app.domain.enums import ResetErrorKind, WorkflowStage


class TokenRequest(BaseModel):
    """Request body for POST /password-reset/token-request."""

    username: str = Field(..., max_length=256, description="Bare account name, without domain")
    human_verified: bool = Field(
        default=False, description="Outcome of the human-verification check"
    )


class TokenSubmission(BaseModel):
    """Request body for POST /password-reset/token."""

    token: str = Field(..., max_length=256)


class PasswordSubmission(BaseModel):
    """Request body for POST /password-reset/password."""

    new_password: str = Field(..., max_length=512)
    repeat_password: str = Field(..., max_length=512)


class WorkflowResponse(BaseModel):
    """Current stage of the session plus the outcome of the last operation."""

    stage: WorkflowStage
    success: bool = True
    error: ResetErrorKind | None = None
    message: str = ""
    display_name: str | None = None

    @classmethod
    def from_result(
        cls, result: WorkflowResult, display_name: str | None = None
    ) -> "WorkflowResponse":
        return cls(
            stage=result.stage,
            success=result.ok,
            error=result.error,
            message=result.message,
            display_name=display_name,
        )
