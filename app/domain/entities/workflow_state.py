"""Workflow state entity: per-session progress through the reset sequence."""

from dataclasses import dataclass

from app.domain.entities.directory_identity import DirectoryIdentity
from app.domain.entities.reset_token import ResetToken
from app.domain.enums import WorkflowStage


@dataclass
class WorkflowState:
    """Mutable state owned by exactly one reset session.

    identity is set once a token request succeeds; token is set once a
    submitted token has been validated for that identity.
    """

    stage: WorkflowStage = WorkflowStage.REQUEST_TOKEN
    username: str = ""
    identity: DirectoryIdentity | None = None
    token: ResetToken | None = None

    def clear(self) -> None:
        """Drop everything the session has learned and return to the initial stage."""
        self.stage = WorkflowStage.REQUEST_TOKEN
        self.username = ""
        self.identity = None
        self.token = None
