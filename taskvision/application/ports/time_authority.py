"""Time authority port.

Services that need timestamps inject a TimeAuthorityProtocol instead of
calling datetime.now() directly, so tests can pin time with
FakeTimeAuthority (tests/helpers/fake_time_authority.py).
"""

from abc import ABC, abstractmethod
from datetime import datetime


class TimeAuthorityProtocol(ABC):
    """Abstract interface for time authority.

    For production use SystemTimeAuthority from
    taskvision.infrastructure.adapters.time_authority.
    """

    @abstractmethod
    def now(self) -> datetime:
        """Return current time with timezone awareness (UTC)."""
        ...

    @abstractmethod
    def utcnow(self) -> datetime:
        """Return current UTC time.

        Returns:
            Timezone-aware datetime in UTC.
        """
        ...

    @abstractmethod
    def monotonic(self) -> float:
        """Return a monotonic clock value in seconds.

        Use this for measuring elapsed time (retry backoff, timeouts),
        not for timestamps.
        """
        ...
