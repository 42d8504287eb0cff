"""Console token sender: writes the token to the application log.

For development and diagnostics only; anyone with log access can reset
any password.
"""

from __future__ import annotations

from app.core.config import Settings
from app.domain.entities import DirectoryIdentity, ResetToken
from app.shared.telemetry.logging import get_logger

logger = get_logger(__name__)


class ConsoleTokenSender:
    """ITokenSender implementation that logs the token instead of sending it."""

    channel = "console"

    @classmethod
    def from_settings(cls, settings: Settings) -> ConsoleTokenSender:
        return cls()

    def is_eligible(self, identity: DirectoryIdentity) -> str | None:
        return None

    def deliver(self, identity: DirectoryIdentity, token: ResetToken) -> None:
        logger.warning(
            "Generated token '%s' for '%s'", token.value, identity.principal_name
        )

    def success_message(self) -> str:
        return "The token has been written to the server log."
