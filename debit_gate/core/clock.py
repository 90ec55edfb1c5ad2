from abc import ABC, abstractmethod
from typing import NamedTuple, Optional
import threading
import time
from debit_gate.core.config import settings


class HostTime(NamedTuple):
    timestamp: int  # unix seconds
    ordinal: int    # processing step, starts at 1


class HostClock(ABC):
    @abstractmethod
    def now(self) -> HostTime:
        pass


class SystemClock(HostClock):
    """
    Wall-clock seconds plus an ordinal counting fixed-length processing steps.
    Neither value is allowed to go backwards, even if the system clock does.
    """

    def __init__(self, step_ms: Optional[int] = None):
        self.step_ms = step_ms or settings.ORDINAL_STEP_MS
        self._lock = threading.Lock()
        self._last = HostTime(timestamp=0, ordinal=0)

    def now(self) -> HostTime:
        with self._lock:
            now_ms = int(time.time() * 1000)
            current = HostTime(
                timestamp=max(now_ms // 1000, self._last.timestamp),
                ordinal=max(now_ms // self.step_ms + 1, self._last.ordinal),
            )
            self._last = current
            return current


class ManualClock(HostClock):
    """Clock driven explicitly by the caller; used by tests and replay tooling."""

    def __init__(self, timestamp: int = 0, ordinal: int = 1):
        self.timestamp = timestamp
        self.ordinal = ordinal

    def now(self) -> HostTime:
        return HostTime(self.timestamp, self.ordinal)

    def advance(self, seconds: int = 0, steps: int = 1):
        self.timestamp += seconds
        self.ordinal += steps
