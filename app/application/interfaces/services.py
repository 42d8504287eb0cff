"""Service interfaces (ports) for the application layer.

Protocols define the contracts the reset workflow needs from the directory
and from delivery channels (DIP). Infrastructure provides the
implementations.
"""

from __future__ import annotations

from collections.abc import Callable
from contextlib import AbstractContextManager
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from app.domain.entities import DirectoryIdentity, ResetToken
    from app.domain.enums import PasswordChangeOutcome


# Directory client interface
class IDirectoryClient(Protocol):
    """Protocol for directory lookup and password replacement.

    Implementations are context managers: the connection is acquired on
    enter and released on exit, whatever the exit path.
    """

    def __enter__(self) -> IDirectoryClient:
        """Open and bind the connection. Raises DirectoryUnavailableException."""

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        """Release the connection; release failures are logged, not raised."""

    def lookup(self, username: str) -> DirectoryIdentity | None:
        """Resolve a bare username to one identity, or None when not found.

        Raises DirectoryUnavailableException on protocol, auth, or timeout failure.
        """

    def change_password(
        self, identity: DirectoryIdentity, new_password: str
    ) -> PasswordChangeOutcome:
        """Replace the identity's password; never raises for directory errors."""


# Zero-argument factory returning an unopened client (one per workflow step).
DirectoryClientFactory = Callable[[], AbstractContextManager["IDirectoryClient"]]


# Token sender interface
class ITokenSender(Protocol):
    """Protocol for a token delivery channel (e-mail, console, SMS, ...)."""

    def is_eligible(self, identity: DirectoryIdentity) -> str | None:
        """Return None when the identity can use this channel, else the reason shown to the user."""

    def deliver(self, identity: DirectoryIdentity, token: ResetToken) -> None:
        """Deliver the token to the identity. Raises TokenDeliveryException on failure."""

    def success_message(self) -> str:
        """Message shown to the user after a successful token request."""
