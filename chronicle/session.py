"""Session-scoped state: commit counters and the pause window."""

from __future__ import annotations

import threading
import time
from typing import Callable, Dict, Optional

PAUSE_SECONDS = 3600.0


class SessionStats:
    """Commits and files committed since the process started."""

    def __init__(self) -> None:
        self.commits = 0
        self.files_committed = 0
        self._lock = threading.Lock()

    def record_commit(self, file_count: int) -> None:
        with self._lock:
            self.commits += 1
            self.files_committed += max(file_count, 0)

    def snapshot(self) -> Dict[str, int]:
        with self._lock:
            return {
                "commits": self.commits,
                "files_committed": self.files_committed,
            }


class PauseController:
    """Timed suppression of triggers.

    Expiry is checked lazily on every ``is_active`` call; there is no timer
    thread clearing it.
    """

    def __init__(
        self,
        clock: Callable[[], float] = time.time,
        duration: float = PAUSE_SECONDS,
    ) -> None:
        self._clock = clock
        self.duration = duration
        self._paused_until: Optional[float] = None
        self._lock = threading.Lock()

    @property
    def paused_until(self) -> Optional[float]:
        return self._paused_until

    def pause(self) -> float:
        with self._lock:
            self._paused_until = self._clock() + self.duration
            return self._paused_until

    def resume(self) -> None:
        with self._lock:
            self._paused_until = None

    def is_active(self) -> bool:
        with self._lock:
            if self._paused_until is None:
                return False
            if self._clock() < self._paused_until:
                return True
            self._paused_until = None
            return False

    def remaining(self) -> float:
        with self._lock:
            if self._paused_until is None:
                return 0.0
            return max(self._paused_until - self._clock(), 0.0)
