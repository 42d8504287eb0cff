"""Token delivery channels (ITokenSender implementations) and their factory."""

from app.infrastructure.external.token_senders.console import ConsoleTokenSender
from app.infrastructure.external.token_senders.email import (
    EmailSenderConfig,
    EmailTokenSender,
)
from app.infrastructure.external.token_senders.factory import TokenSenderFactory

__all__ = [
    "ConsoleTokenSender",
    "EmailSenderConfig",
    "EmailTokenSender",
    "TokenSenderFactory",
]
