"""In-memory store for password reset tokens.

Single shared, thread-safe place for token state. Tokens are keyed by value
for lookup and by identity key so that a new token replaces the previous
one. Expiry is checked lazily on every read; sweep_expired only bounds
memory.
"""

from __future__ import annotations

import secrets
import threading
from datetime import timedelta

from app.domain.entities import DirectoryIdentity, ResetToken
from app.shared.telemetry.logging import get_logger
from app.shared.utils.clock import Clock, utc_now

logger = get_logger(__name__)

# 32 random bytes = 256 bits of entropy, ~43 URL-safe characters.
DEFAULT_TOKEN_BYTES = 32


class TokenIssuer:
    """Issue, validate, claim, and consume single-use reset tokens.

    Every public method takes the store lock for its whole body, so each call
    is atomic with respect to the others. No directory or network call ever
    happens under the lock.
    """

    def __init__(
        self,
        default_ttl: timedelta,
        *,
        clock: Clock = utc_now,
        token_bytes: int = DEFAULT_TOKEN_BYTES,
    ) -> None:
        if default_ttl <= timedelta(0):
            raise ValueError("default_ttl must be positive")
        if token_bytes < 16:
            raise ValueError("token_bytes must be at least 16 (128 bits)")
        self._default_ttl = default_ttl
        self._clock = clock
        self._token_bytes = token_bytes
        self._lock = threading.Lock()
        self._tokens: dict[str, ResetToken] = {}
        self._current_by_identity: dict[str, str] = {}
        self._claimed: set[str] = set()

    def issue(self, identity: DirectoryIdentity, ttl: timedelta | None = None) -> ResetToken:
        """Mint a new token for identity, replacing any previous one.

        The previous token (live or not) is removed, so later validation of
        its value finds nothing.
        """
        if ttl is None:
            ttl = self._default_ttl
        if ttl <= timedelta(0):
            raise ValueError("ttl must be positive")
        with self._lock:
            previous = self._current_by_identity.pop(identity.key, None)
            if previous is not None:
                self._tokens.pop(previous, None)
                self._claimed.discard(previous)
                logger.debug("Replaced outstanding token for '%s'", identity.principal_name)
            value = self._new_value()
            token = ResetToken(
                value=value,
                identity=identity,
                issued_at=self._clock(),
                ttl=ttl,
            )
            self._tokens[value] = token
            self._current_by_identity[identity.key] = value
        logger.info(
            "Issued token for '%s' (expires %s)",
            identity.principal_name,
            token.expires_at.isoformat(),
        )
        return token

    def validate(self, value: str) -> ResetToken | None:
        """Return the token for value if it is live, else None. Does not mutate."""
        with self._lock:
            return self._live_token(value)

    def claim(self, value: str) -> ResetToken | None:
        """Reserve a live token for an in-flight password change.

        Returns None if the token is not live or is already claimed. A claim
        ends with consume() on success or release() otherwise.
        """
        with self._lock:
            token = self._live_token(value)
            if token is None or value in self._claimed:
                return None
            self._claimed.add(value)
            return token

    def release(self, value: str) -> None:
        """End a claim without consuming the token. No-op when not claimed."""
        with self._lock:
            self._claimed.discard(value)

    def consume(self, value: str) -> bool:
        """Mark a live token consumed. Returns False if it was not live; never raises."""
        with self._lock:
            token = self._live_token(value)
            if token is None:
                return False
            self._tokens[value] = token.mark_consumed()
            self._claimed.discard(value)
        logger.info("Consumed token for '%s'", token.identity.principal_name)
        return True

    def sweep_expired(self) -> int:
        """Drop expired and consumed tokens. Returns the number removed."""
        with self._lock:
            now = self._clock()
            dead = [
                value
                for value, token in self._tokens.items()
                if not token.is_live(now) and value not in self._claimed
            ]
            for value in dead:
                token = self._tokens.pop(value)
                if self._current_by_identity.get(token.identity.key) == value:
                    del self._current_by_identity[token.identity.key]
        if dead:
            logger.debug("Swept %d dead tokens", len(dead))
        return len(dead)

    def __len__(self) -> int:
        with self._lock:
            return len(self._tokens)

    def _live_token(self, value: str) -> ResetToken | None:
        # Caller holds self._lock.
        if not value:
            return None
        token = self._tokens.get(value)
        if token is None or not token.is_live(self._clock()):
            return None
        if self._current_by_identity.get(token.identity.key) != value:
            return None
        return token

    def _new_value(self) -> str:
        # Caller holds self._lock. Values are unique within the store.
        while True:
            value = secrets.token_urlsafe(self._token_bytes)
            if value not in self._tokens:
                return value
