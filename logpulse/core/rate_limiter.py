"""
LogPulse AI - Rate Limiter
==========================

Trailing-window quota per caller identity, recomputed from the history store
on every check. There is no counter state of its own, so the limiter always
agrees with what the store holds.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Union

from logpulse_shared.constants import RateLimitDefaults
from logpulse_shared.utils.logging import get_logger
from logpulse.core.history_store import HistoryStore

logger = get_logger(__name__)

HOUR = timedelta(hours=1)


def whole_hours(window: timedelta) -> int:
    """Length of ``window`` in hours."""
    return window // HOUR


@dataclass(frozen=True)
class Admit:
    """The request fits in the quota."""
    remaining: int


@dataclass(frozen=True)
class Deny:
    """The quota for the window is used up."""
    limit: int
    window: timedelta

    @property
    def window_hours(self) -> int:
        return whole_hours(self.window)


Decision = Union[Admit, Deny]


class RateLimiter:
    """
    Fixed trailing-window counter.

    A request is denied once the identity already has ``max_requests``
    analyses created at or after ``now - window``.
    """

    def __init__(
        self,
        store: HistoryStore,
        max_requests: int = RateLimitDefaults.MAX_REQUESTS,
        window: timedelta = timedelta(hours=RateLimitDefaults.WINDOW_HOURS),
    ):
        if max_requests < 1:
            raise ValueError("max_requests must be at least 1")
        if window <= timedelta(0):
            raise ValueError("window must be positive")
        if window % HOUR:
            raise ValueError("window must be a whole number of hours")

        self.store = store
        self.max_requests = max_requests
        self.window = window

    @property
    def window_hours(self) -> int:
        return whole_hours(self.window)

    def _count(self, identity: str, now: datetime) -> int:
        return self.store.count_since(identity, now - self.window)

    def check_and_admit(self, identity: str, now: datetime) -> Decision:
        """Decide whether ``identity`` may run another analysis at ``now``."""
        used = self._count(identity, now)

        logger.debug(
            f"{identity} has made {used} requests in the last {self.window_hours} hours",
            extra={"identity": identity, "used": used, "limit": self.max_requests}
        )

        if used >= self.max_requests:
            logger.warning(
                f"Rate limit exceeded for {identity}",
                extra={"identity": identity, "used": used, "limit": self.max_requests}
            )
            return Deny(limit=self.max_requests, window=self.window)

        return Admit(remaining=self.max_requests - used)

    def remaining(self, identity: str, now: datetime) -> int:
        """Requests left for ``identity`` in the current window."""
        return max(0, self.max_requests - self._count(identity, now))
