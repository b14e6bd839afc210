"""Injectable time source shared by the auth guard and the integration monitor."""

import time
from datetime import UTC, datetime
from typing import Protocol


class Clock(Protocol):
    def now(self) -> datetime:
        """Current wall-clock time as an aware UTC datetime."""
        ...

    def monotonic(self) -> float:
        """Monotonic seconds, used for latency measurement."""
        ...


class SystemClock:
    """Real time."""

    def now(self) -> datetime:
        return datetime.now(UTC)

    def monotonic(self) -> float:
        return time.monotonic()
