from __future__ import annotations
from collections.abc import Callable
from typing import Dict
import time
from threading import RLock

Clock = Callable[[], float]


class EventRateCounter:
    """Count events per epoch second and report the mean per-second rate.

    Buckets are keyed by ``int(clock())`` and are kept for the life of the
    counter unless ``retention_seconds`` is given, in which case ``record``
    drops buckets older than that many seconds before the current one.

    ``average`` truncates toward zero like integer division unless the
    counter was built with ``fractional=True``.
    """

    def __init__(
        self,
        *,
        clock: Clock = time.time,
        fractional: bool = False,
        retention_seconds: int | None = None,
    ) -> None:
        if retention_seconds is not None and retention_seconds < 1:
            raise ValueError("retention_seconds must be >= 1")
        self._clock = clock
        self._fractional = fractional
        self._retention = retention_seconds
        self._buckets: Dict[int, int] = {}
        self._lock = RLock()
        self.started = clock()

    @property
    def fractional(self) -> bool:
        return self._fractional

    @property
    def buckets(self) -> Dict[int, int]:
        with self._lock:
            return dict(self._buckets)

    def record(self) -> None:
        second = int(self._clock())
        with self._lock:
            self._buckets[second] = self._buckets.get(second, 0) + 1
            if self._retention is not None:
                self._evict(second - self._retention)

    def _evict(self, cutoff: int) -> None:
        # caller holds the lock
        for key in [k for k in self._buckets if k <= cutoff]:
            del self._buckets[key]

    def average(self) -> int | float:
        with self._lock:
            if not self._buckets:
                return 0
            total = sum(self._buckets.values())
            size = len(self._buckets)
        if self._fractional:
            return total / size
        return total // size

    def snapshot(self) -> Dict[str, object]:
        with self._lock:
            data: Dict[str, object] = {
                "buckets": len(self._buckets),
                "events": sum(self._buckets.values()),
                "messages_per_second": self.average(),
            }
        data["uptime_seconds"] = int(self._clock() - self.started)
        return data


def make_clock(kind: str) -> Clock:
    if kind == "wall":
        return time.time
    if kind == "monotonic":
        return time.monotonic
    raise ValueError(f"unknown clock: {kind!r}")


__all__ = ["EventRateCounter", "Clock", "make_clock"]
