"""Elapsed-time clocks used by the filter loop."""

import time
from typing import Protocol


class Clock(Protocol):
    """Restartable elapsed-time source."""

    def start(self) -> None:
        """Restart measuring from now."""
        ...

    def elapsed_seconds(self) -> float:
        """Seconds since the last start()."""
        ...


class MonotonicClock:
    """Wall-clock timer backed by time.perf_counter()."""

    def __init__(self):
        self._start = time.perf_counter()

    def start(self) -> None:
        self._start = time.perf_counter()

    def elapsed_seconds(self) -> float:
        return time.perf_counter() - self._start


class ManualClock:
    """
    Clock advanced explicitly by the caller.

    Makes timing deterministic in tests:
        clock = ManualClock()
        loop = PoseFilterLoop(clock=clock)
        loop.filter(pose)      # warm-up
        clock.advance(0.02)
        loop.filter(pose)
    """

    def __init__(self, now: float = 0.0):
        self.now = now
        self._start = now

    def advance(self, dt: float) -> None:
        self.now += dt

    def start(self) -> None:
        self._start = self.now

    def elapsed_seconds(self) -> float:
        return self.now - self._start


class ReplayClock(ManualClock):
    """Clock that follows recorded frame timestamps."""

    def set_time(self, timestamp: float) -> None:
        self.now = float(timestamp)
