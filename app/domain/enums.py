"""Domain enumerations for the password reset service.

Enums represent fixed sets of domain values: workflow stages, directory
outcomes and the error kinds surfaced to the requester.
"""

from enum import Enum


class _ValuesMixin:
    """Mixin that adds a values() classmethod to str Enums."""

    @classmethod
    def values(cls) -> list[str]:
        """Return all valid values as strings."""
        return [member.value for member in cls]


class WorkflowStage(_ValuesMixin, str, Enum):
    """Stage of a reset session.

    There is no terminal stage: completion and "back" both return to
    REQUEST_TOKEN with the session state cleared.
    """

    REQUEST_TOKEN = "request_token"
    USE_TOKEN = "use_token"
    SET_PASSWORD = "set_password"


class PasswordChangeOutcome(_ValuesMixin, str, Enum):
    """Result of a password replacement in the directory."""

    SUCCESS = "success"
    POLICY_VIOLATION = "policy_violation"
    UNAVAILABLE = "unavailable"


class ResetErrorKind(_ValuesMixin, str, Enum):
    """Coarse failure kinds that reach the requester.

    REQUEST_FAILED covers both an unknown username and a directory outage so
    the two cannot be told apart.
    """

    HUMAN_VERIFICATION_REQUIRED = "human_verification_required"
    REQUEST_FAILED = "request_failed"
    SENDER_INELIGIBLE = "sender_ineligible"
    DELIVERY_FAILED = "delivery_failed"
    TOKEN_INVALID = "token_invalid"
    PASSWORD_MISMATCH = "password_mismatch"
    PASSWORD_POLICY_VIOLATION = "password_policy_violation"
