"""Domain exceptions for the password reset service.

Defines domain-level exceptions raised by the directory adapter, token
senders and the reset workflow. They carry no transport concerns; the
presentation layer maps them to HTTP responses in exception handlers.
Expected workflow failures (wrong token, policy violation, ...) are not
exceptions: they are returned as ResetErrorKind values in WorkflowResult.
"""

from typing import Any


class PasswordResetException(Exception):
    """Base exception for all password reset service errors.

    Attributes:
        message: Human-readable error description.
        error_code: Machine-readable error code.
        details: Additional error context (e.g. channel, stage).
    """

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize the exception.

        Args:
            message: Human-readable error description.
            error_code: Optional machine-readable code; defaults to class name.
            details: Optional dict of extra context.
        """
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        """Return the JSON body used by the exception handlers."""
        return {
            "error": self.error_code,
            "message": self.message,
            "details": self.details,
        }


class ConfigurationException(PasswordResetException):
    """Raised at startup when the service is configured inconsistently."""

    def __init__(self, message: str, setting: str | None = None) -> None:
        details = {"setting": setting} if setting else {}
        super().__init__(message, "CONFIGURATION_ERROR", details)


class DirectoryUnavailableException(PasswordResetException):
    """Raised when the directory cannot be reached, bound to, or queried.

    The message is deliberately generic; protocol detail is logged where the
    failure happens and never travels with the exception.
    """

    def __init__(self, operation: str) -> None:
        super().__init__(
            "Directory service unavailable",
            "DIRECTORY_UNAVAILABLE",
            {"operation": operation},
        )


class TokenDeliveryException(PasswordResetException):
    """Raised by a token sender when the token could not be delivered."""

    def __init__(self, channel: str) -> None:
        super().__init__(
            f"Token delivery failed on channel '{channel}'",
            "DELIVERY_FAILED",
            {"channel": channel},
        )


class InvalidStageException(PasswordResetException):
    """Raised when a workflow operation is called outside its stage.

    The workflow state is left untouched.
    """

    def __init__(self, operation: str, expected: str, actual: str) -> None:
        super().__init__(
            f"Cannot {operation} in stage {actual}; expected {expected}",
            "INVALID_STAGE",
            {"operation": operation, "expected": expected, "actual": actual},
        )
