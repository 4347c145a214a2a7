"""Live telemetry record ingestion.

A live record is one structured update from the flight computer:

    {"sensors": {"accel": {"x", "y", "z"}, "gyro": {"x", "y", "z"},
                 "altitude": optional},
     "system": {"millis": device milliseconds}}

Relative time comes from the arrival clock, not from the device counter.
"""

import logging
import math
import time
from typing import Any, Callable, Mapping, Optional

from ..core.types import SensorSample
from .records import MalformedRecordError

logger = logging.getLogger(__name__)


def _field(record: Mapping[str, Any], path: str) -> Any:
    node: Any = record
    for key in path.split("."):
        if not isinstance(node, Mapping) or key not in node:
            raise MalformedRecordError(f"missing field '{path}'")
        node = node[key]
    return node


def _number(record: Mapping[str, Any], path: str) -> float:
    value = _field(record, path)
    if isinstance(value, bool):
        raise MalformedRecordError(f"field '{path}' is not a number: {value!r}")
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise MalformedRecordError(
            f"field '{path}' is not a number: {value!r}"
        ) from None
    if not math.isfinite(number):
        raise MalformedRecordError(f"field '{path}' is not finite: {value!r}")
    return number


class LiveRecordParser:
    """Turns live records into samples, timing them against the first arrival.

    One parser instance is one session; call reset() to start a new one.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        """Initialize parser.

        Args:
            clock: Arrival clock in seconds.
        """
        self._clock = clock
        self._first_arrival: Optional[float] = None
        self._count = 0

    def parse(
        self,
        record: Mapping[str, Any],
        arrival_time: Optional[float] = None,
    ) -> SensorSample:
        """Convert one live record into a sample.

        Args:
            record: Nested live record.
            arrival_time: Arrival clock reading; read from the clock if None.

        Returns:
            Raw sample with relative_time measured from the session's first record.

        Raises:
            MalformedRecordError: If a required field is missing or not numeric.
        """
        accel_x = _number(record, "sensors.accel.x")
        accel_y = _number(record, "sensors.accel.y")
        accel_z = _number(record, "sensors.accel.z")
        gyro_x = _number(record, "sensors.gyro.x")
        gyro_y = _number(record, "sensors.gyro.y")
        gyro_z = _number(record, "sensors.gyro.z")
        millis = int(_number(record, "system.millis"))

        sensors = record["sensors"]
        altitude = 0.0
        if sensors.get("altitude") is not None:
            altitude = _number(record, "sensors.altitude")

        if arrival_time is None:
            arrival_time = self._clock()
        if self._first_arrival is None:
            self._first_arrival = arrival_time
            logger.debug("Live session started at clock %.3f", arrival_time)

        self._count += 1
        return SensorSample(
            timestamp=millis,
            relative_time=max(0.0, arrival_time - self._first_arrival),
            accel_x=accel_x,
            accel_y=accel_y,
            accel_z=accel_z,
            gyro_x=gyro_x,
            gyro_y=gyro_y,
            gyro_z=gyro_z,
            altitude=altitude,
        )

    @property
    def count(self) -> int:
        """Records parsed in the current session."""
        return self._count

    def reset(self) -> None:
        """Start a new session."""
        self._first_arrival = None
        self._count = 0
