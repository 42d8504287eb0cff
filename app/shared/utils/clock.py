"""UTC clock helpers.

All timestamps in the service are timezone-aware UTC. Components that
compare against "now" take a Clock so tests can move time explicitly.
"""

from collections.abc import Callable
from datetime import UTC, datetime

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    """Return the current UTC datetime with timezone info.

    Use this instead of datetime.now() (naive, local time) or
    datetime.utcnow() (naive, deprecated in Python 3.12).
    """
    return datetime.now(UTC)
