"""Synthetic live telemetry source for development without a flight computer."""

import logging
import math
import time
from typing import Any, Callable, Dict, Optional

from ..stream.producer import SourceError

logger = logging.getLogger(__name__)


def _monotonic_millis_from(start: float) -> Callable[[], int]:
    def clock() -> int:
        return int((time.monotonic() - start) * 1000)
    return clock


class MockRocketSource:
    """Generates deterministic live records from a millisecond clock.

    The signals are slow sinusoids around a rocket sitting nose-up with
    gravity on -Z, enough to make every filter move.
    """

    def __init__(
        self,
        clock: Optional[Callable[[], int]] = None,
        fail_every: Optional[int] = None,
    ):
        """Initialize mock source.

        Args:
            clock: Device millisecond counter; starts at 0 on construction if None.
            fail_every: Raise SourceError on every n-th fetch (failure injection).
        """
        self._clock = clock or _monotonic_millis_from(time.monotonic())
        self._fail_every = fail_every
        self._fetches = 0

    @property
    def fetches(self) -> int:
        """Number of fetch() calls so far, failed ones included."""
        return self._fetches

    def fetch(self) -> Dict[str, Any]:
        """Return the record for the current clock reading.

        Raises:
            SourceError: When failure injection triggers.
        """
        self._fetches += 1
        if self._fail_every and self._fetches % self._fail_every == 0:
            raise SourceError(f"Injected failure on fetch {self._fetches}")

        return self.record_at(self._clock())

    @staticmethod
    def record_at(t: int) -> Dict[str, Any]:
        """Synthetic record at device time t (ms)."""
        return {
            "sensors": {
                "accel": {
                    "x": 0.5 * math.sin(t / 1000),
                    "y": 0.3 * math.cos(t / 1500),
                    "z": -1.0 + 0.1 * math.sin(t / 200),
                },
                "gyro": {
                    "x": 15.0 * math.cos(t / 800),
                    "y": 10.0 * math.sin(t / 1000),
                    "z": 25.0 * math.sin(t / 200),
                },
                "altitude": 100.0 + 20.0 * math.sin(t / 3000),
            },
            "system": {"millis": t},
        }
