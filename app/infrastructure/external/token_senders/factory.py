"""Token sender factory: creates the configured delivery channel from settings."""

from collections.abc import Callable
from typing import ClassVar

from app.application.interfaces.services import ITokenSender
from app.core.config import Settings
from app.domain.exceptions import ConfigurationException
from app.infrastructure.external.token_senders.console import ConsoleTokenSender
from app.infrastructure.external.token_senders.email import EmailTokenSender
from app.shared.telemetry.logging import get_logger

logger = get_logger(__name__)

SenderBuilder = Callable[[Settings], ITokenSender]


class TokenSenderFactory:
    """Factory for token senders by channel name (settings.token_sender)."""

    _senders: ClassVar[dict[str, SenderBuilder]] = {
        "console": ConsoleTokenSender.from_settings,
        "email": EmailTokenSender.from_settings,
    }

    @classmethod
    def create_sender(cls, settings: Settings) -> ITokenSender:
        """Create the sender named by settings.token_sender.

        Raises:
            ConfigurationException: If the channel is not registered.
        """
        channel = settings.token_sender.strip().lower()
        builder = cls._senders.get(channel)
        if builder is None:
            raise ConfigurationException(
                f"Unsupported token sender: {settings.token_sender}. "
                f"Supported: {cls.list_supported_senders()}",
                setting="token_sender",
            )
        logger.info("Using token sender '%s'", channel)
        return builder(settings)

    @classmethod
    def register_sender(cls, channel: str, builder: SenderBuilder) -> None:
        """Register an additional channel (e.g. SMS) under channel."""
        cls._senders[channel.lower()] = builder
        logger.info("Registered token sender: %s", channel)

    @classmethod
    def list_supported_senders(cls) -> list[str]:
        return list(cls._senders.keys())
