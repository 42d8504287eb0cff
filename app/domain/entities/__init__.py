"""Domain entities.

Pure domain models; no directory, transport, or HTTP concerns.
"""

from app.domain.entities.directory_identity import DirectoryIdentity
from app.domain.entities.reset_token import ResetToken
from app.domain.entities.workflow_state import WorkflowState

__all__ = [
    "DirectoryIdentity",
    "ResetToken",
    "WorkflowState",
]
