"""Fixed-window request admission for expensive endpoints (/api/nlq)."""
import time
from typing import Callable, Dict, Tuple


class FixedWindowRateLimiter:
    """Allow at most `limit` hits per `window` seconds for each key.

    No queueing: a hit over the limit is refused immediately. Windows that
    have ended are pruned at most once per window length.
    """

    def __init__(self, limit: int, window: float, clock: Callable[[], float] = time.monotonic):
        self.limit = limit
        self.window = window
        self._clock = clock
        self._windows: Dict[str, Tuple[float, int]] = {}
        self._last_prune = clock()

    def _prune(self, now: float) -> None:
        if now - self._last_prune < self.window:
            return
        self._last_prune = now
        stale = [k for k, (started, _) in self._windows.items() if now - started >= self.window]
        for k in stale:
            del self._windows[k]

    def hit(self, key: str) -> bool:
        now = self._clock()
        self._prune(now)
        started, count = self._windows.get(key, (now, 0))
        if now - started >= self.window:
            started, count = now, 0
        if count >= self.limit:
            self._windows[key] = (started, count)
            return False
        self._windows[key] = (started, count + 1)
        return True

    def reset(self) -> None:
        self._windows.clear()
