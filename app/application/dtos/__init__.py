"""Application DTOs."""

from app.application.dtos.workflow import WorkflowResult

__all__ = ["WorkflowResult"]
