"""Reset token entity.

A token proves that the requester received an out-of-band message tied to
one directory identity. It is usable only while unconsumed and before its
expiry instant.
"""

from dataclasses import dataclass, replace
from datetime import datetime, timedelta

from app.domain.entities.directory_identity import DirectoryIdentity


@dataclass(frozen=True)
class ResetToken:
    """Short-lived, single-use secret authorizing a password change."""

    value: str
    identity: DirectoryIdentity
    issued_at: datetime
    ttl: timedelta
    consumed: bool = False

    @property
    def expires_at(self) -> datetime:
        return self.issued_at + self.ttl

    def is_expired(self, now: datetime) -> bool:
        """Return whether now is at or past the expiry instant."""
        return now >= self.expires_at

    def is_live(self, now: datetime) -> bool:
        """Return whether the token can still authorize a password change."""
        return not self.consumed and not self.is_expired(now)

    def mark_consumed(self) -> "ResetToken":
        """Return a consumed copy of this token."""
        return replace(self, consumed=True)

    def __repr__(self) -> str:
        # Keep the secret value out of logs and tracebacks.
        return (
            f"ResetToken(identity={self.identity.principal_name!r}, "
            f"issued_at={self.issued_at.isoformat()}, ttl={self.ttl}, "
            f"consumed={self.consumed})"
        )
