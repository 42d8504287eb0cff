"""Domain layer: entities, enums, and exceptions.

No dependencies on infrastructure or presentation. Used by application
and infrastructure layers.
"""

from app.domain.entities import DirectoryIdentity, ResetToken, WorkflowState
from app.domain.enums import PasswordChangeOutcome, ResetErrorKind, WorkflowStage
from app.domain.exceptions import (
    ConfigurationException,
    DirectoryUnavailableException,
    InvalidStageException,
    PasswordResetException,
    TokenDeliveryException,
)

__all__ = [
    # Entities
    "DirectoryIdentity",
    "ResetToken",
    "WorkflowState",
    # Enums
    "PasswordChangeOutcome",
    "ResetErrorKind",
    "WorkflowStage",
    # Exceptions
    "ConfigurationException",
    "DirectoryUnavailableException",
    "InvalidStageException",
    "PasswordResetException",
    "TokenDeliveryException",
]
