"""E-mail token sender (SMTP).

Composes a message per token and sends it to the identity's mail
attribute. Users without an e-mail address are not eligible.
"""

from __future__ import annotations

import smtplib
from dataclasses import dataclass
from email.message import EmailMessage

from app.core.config import Settings
from app.domain.entities import DirectoryIdentity, ResetToken
from app.domain.exceptions import TokenDeliveryException
from app.shared.telemetry.logging import get_logger

logger = get_logger(__name__)

NO_EMAIL_ADDRESS_MESSAGE = "Your user has no e-mail address."


@dataclass(frozen=True)
class EmailSenderConfig:
    """SMTP connection and message settings for the e-mail channel."""

    from_address: str
    host: str = "localhost"
    port: int = 25
    username: str | None = None
    password: str | None = None
    starttls: bool = False
    timeout_seconds: int = 10
    subject: str = "Password Reset"
    body_template: str = "Your token is '{token}'"
    content_type: str = "text/plain"

    @classmethod
    def from_settings(cls, settings: Settings) -> EmailSenderConfig:
        return cls(
            from_address=settings.email_from,
            host=settings.smtp_host,
            port=settings.smtp_port,
            username=settings.smtp_username,
            password=(
                settings.smtp_password.get_secret_value()
                if settings.smtp_password
                else None
            ),
            starttls=settings.smtp_starttls,
            timeout_seconds=settings.smtp_timeout_seconds,
            subject=settings.email_subject,
        )


class EmailTokenSender:
    """ITokenSender implementation that e-mails the token to the user."""

    channel = "email"

    def __init__(
        self,
        config: EmailSenderConfig,
        *,
        smtp_class: type[smtplib.SMTP] = smtplib.SMTP,
    ) -> None:
        self._config = config
        self._smtp_class = smtp_class

    @classmethod
    def from_settings(cls, settings: Settings) -> EmailTokenSender:
        return cls(EmailSenderConfig.from_settings(settings))

    def is_eligible(self, identity: DirectoryIdentity) -> str | None:
        if not identity.mail:
            logger.warning("The user '%s' has no e-mail address", identity.principal_name)
            return NO_EMAIL_ADDRESS_MESSAGE
        return None

    def compose(self, identity: DirectoryIdentity, token: ResetToken) -> EmailMessage:
        """Build the message carrying token for identity."""
        config = self._config
        msg = EmailMessage()
        msg["Subject"] = config.subject
        msg["From"] = config.from_address
        msg["To"] = identity.mail
        _, _, subtype = config.content_type.partition("/")
        msg.set_content(
            config.body_template.format(token=token.value),
            subtype=subtype or "plain",
        )
        return msg

    def deliver(self, identity: DirectoryIdentity, token: ResetToken) -> None:
        """Send the token by e-mail.

        Raises:
            TokenDeliveryException: If the identity has no address or SMTP fails.
        """
        if not identity.mail:
            raise TokenDeliveryException(self.channel)
        config = self._config
        msg = self.compose(identity, token)
        try:
            with self._smtp_class(
                config.host, config.port, timeout=config.timeout_seconds
            ) as server:
                if config.starttls:
                    server.starttls()
                if config.username:
                    server.login(config.username, config.password or "")
                server.send_message(msg)
        except (smtplib.SMTPException, OSError) as e:
            logger.error(
                "Failed to send token e-mail to '%s' via %s:%s: %s",
                identity.principal_name,
                config.host,
                config.port,
                e,
            )
            raise TokenDeliveryException(self.channel) from e
        logger.info("Sent token e-mail to '%s'", identity.principal_name)

    def success_message(self) -> str:
        return "Check your e-mail."
