"""Wall-clock identifiers in milliseconds since the epoch."""
import threading
import time


class MillisecondIds:
    """Hands out the current time in milliseconds, bumped so values never repeat.

    Two calls within the same millisecond get consecutive values instead of
    the same one. Uniqueness only holds inside one process.
    """

    def __init__(self, clock=time.time):
        self._clock = clock
        self._last = 0
        self._lock = threading.Lock()

    def next(self) -> int:
        with self._lock:
            now = int(self._clock() * 1000)
            self._last = now if now > self._last else self._last + 1
            return self._last
