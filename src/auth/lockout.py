"""Per-identity failed-login tracking with time-based lockout.

Counters live in an LRU-ordered map capped at ``max_identities``; the least
recently touched identity is evicted first. All mutations happen without an
``await`` in between, so on a single event loop no read-modify-write can
interleave.
"""

import logging
import math
from collections import OrderedDict
from dataclasses import dataclass
from datetime import datetime, timedelta

from src.clock import Clock, SystemClock

logger = logging.getLogger(__name__)


@dataclass
class LoginAttemptCounter:
    count: int
    last_attempt_at: datetime


class LockoutTracker:
    def __init__(
        self,
        max_attempts: int = 3,
        lockout_duration: timedelta = timedelta(minutes=30),
        max_identities: int = 10_000,
        clock: Clock | None = None,
    ) -> None:
        self.max_attempts = max_attempts
        self.lockout_duration = lockout_duration
        self.max_identities = max_identities
        self._clock = clock or SystemClock()
        self._counters: OrderedDict[str, LoginAttemptCounter] = OrderedDict()

    def __len__(self) -> int:
        return len(self._counters)

    def get(self, identity: str) -> LoginAttemptCounter | None:
        return self._counters.get(identity)

    def remaining_lockout(self, identity: str) -> timedelta | None:
        """Return time left on an active lockout, or None when the identity may try.

        A counter whose last failure is older than the lockout window is
        dropped here, whatever its count.
        """
        counter = self._counters.get(identity)
        if counter is None:
            return None

        elapsed = self._clock.now() - counter.last_attempt_at
        if elapsed >= self.lockout_duration:
            del self._counters[identity]
            return None
        if counter.count >= self.max_attempts:
            return self.lockout_duration - elapsed
        return None

    def remaining_minutes(self, identity: str) -> int | None:
        remaining = self.remaining_lockout(identity)
        if remaining is None:
            return None
        return max(1, math.ceil(remaining.total_seconds() / 60))

    def record_failure(self, identity: str) -> LoginAttemptCounter:
        now = self._clock.now()
        counter = self._counters.get(identity)
        if counter is None:
            counter = LoginAttemptCounter(count=0, last_attempt_at=now)
            self._counters[identity] = counter
        counter.count += 1
        counter.last_attempt_at = now
        self._counters.move_to_end(identity)

        while len(self._counters) > self.max_identities:
            evicted, _ = self._counters.popitem(last=False)
            logger.debug("Evicted login attempt counter for %s", evicted)

        logger.warning("Failed admin login attempt %d/%d for %s", counter.count, self.max_attempts, identity)
        if counter.count == self.max_attempts:
            logger.warning(
                "Admin login locked for %s for %d minutes",
                identity,
                int(self.lockout_duration.total_seconds() // 60),
            )
        return counter

    def reset(self, identity: str) -> None:
        self._counters.pop(identity, None)
