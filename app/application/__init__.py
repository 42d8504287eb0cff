"""Application layer: interfaces, DTOs, and services.

Depends only on domain and protocol definitions (DIP).
Infrastructure implements the interfaces (directory, token senders).
"""

from app.application.dtos import WorkflowResult
from app.application.interfaces import (
    DirectoryClientFactory,
    IDirectoryClient,
    ITokenSender,
)
from app.application.services import ResetWorkflow, TokenIssuer

__all__ = [
    "DirectoryClientFactory",
    "IDirectoryClient",
    "ITokenSender",
    "ResetWorkflow",
    "TokenIssuer",
    "WorkflowResult",
]
