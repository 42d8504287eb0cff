"""Application interfaces (ports) implemented by infrastructure."""

from app.application.interfaces.services import (
    DirectoryClientFactory,
    IDirectoryClient,
    ITokenSender,
)

__all__ = [
    "DirectoryClientFactory",
    "IDirectoryClient",
    "ITokenSender",
]
