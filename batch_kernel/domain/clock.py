"""
Clock -- Injectable time abstraction for the batch engine.

Responsibility:
    Gives the process loop a single source for wall-clock timestamps
    (``now()``) and for elapsed-time measurement (``monotonic()``), so that
    run times and run-result timestamps are deterministic under test.

Architecture position:
    Kernel > Domain.  Zero I/O except ``SystemClock``, which is the one
    sanctioned boundary for reading real time.
"""

import time
from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone


class Clock(ABC):
    """
    Abstract clock interface.

    Contract:
        Services that need the current time receive a Clock through their
        constructor instead of calling ``datetime.now()`` or
        ``time.monotonic()`` themselves.

    Guarantees:
        - ``now()`` returns a timezone-aware UTC ``datetime``.
        - ``monotonic()`` never decreases between calls.
    """

    @abstractmethod
    def now(self) -> datetime:
        """Get the current time."""
        ...

    @abstractmethod
    def monotonic(self) -> float:
        """Get a monotonic reading in seconds, for measuring durations."""
        ...


class SystemClock(Clock):
    """Production clock backed by the system time."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)

    def monotonic(self) -> float:
        return time.monotonic()


class DeterministicClock(Clock):
    """
    Test clock with controlled time.

    Both readings move together: ``advance(n)`` moves ``now()`` forward by
    ``n`` seconds and increases ``monotonic()`` by ``n``.
    """

    def __init__(self, fixed_time: datetime | None = None):
        self._fixed_time = fixed_time or datetime(
            2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc
        )
        self._elapsed = 0.0

    def now(self) -> datetime:
        return self._fixed_time + timedelta(seconds=self._elapsed)

    def monotonic(self) -> float:
        return self._elapsed

    def advance(self, seconds: float = 1) -> None:
        """Advance the clock by the specified seconds."""
        if seconds < 0:
            raise ValueError("DeterministicClock cannot move backwards")
        self._elapsed += seconds

    def tick(self) -> datetime:
        """Advance by 1 second and return new time."""
        self.advance(1)
        return self.now()
