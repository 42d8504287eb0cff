"""DTOs for the reset workflow (no dependency on HTTP schemas)."""

from dataclasses import dataclass

from app.domain.enums import ResetErrorKind, WorkflowStage


@dataclass(frozen=True)
class WorkflowResult:
    """Outcome of one workflow operation: the stage after it, plus an error kind on failure."""

    stage: WorkflowStage
    error: ResetErrorKind | None = None
    message: str = ""

    @property
    def ok(self) -> bool:
        return self.error is None
