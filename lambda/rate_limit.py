"""
Minimum-spacing gate for outbound judge requests.

Each judge adapter owns exactly one gate. All callers of that adapter share
the same last-request instant, so concurrent requests queue behind the lock
in the order they arrive.
"""
import threading
import time
from typing import Callable, Optional


class RequestGate:
    """
    Enforce a minimum interval between consecutive requests to one backend.

    Args:
        min_spacing_seconds: Minimum time between two requests
        clock: Monotonic clock in seconds (injectable for tests)
        sleep: Sleep function (injectable for tests)
    """

    def __init__(
        self,
        min_spacing_seconds: float,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep
    ):
        if min_spacing_seconds < 0:
            raise ValueError("min_spacing_seconds must not be negative")
        self.min_spacing_seconds = min_spacing_seconds
        self._clock = clock
        self._sleep = sleep
        self._lock = threading.Lock()
        self._last_request: Optional[float] = None

    def wait(self) -> float:
        """
        Block until the spacing since the previous request has elapsed,
        then claim the current instant for the caller.

        Returns:
            Seconds spent waiting (0.0 if no wait was needed)
        """
        with self._lock:
            now = self._clock()
            waited = 0.0

            if self._last_request is not None:
                remaining = self.min_spacing_seconds - (now - self._last_request)
                if remaining > 0:
                    self._sleep(remaining)
                    waited = remaining
                    now = self._clock()

            self._last_request = now
            return waited

    @property
    def last_request(self) -> Optional[float]:
        return self._last_request
