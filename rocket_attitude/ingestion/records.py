"""Tab-separated flight record parsing.

A record file has one header line followed by data lines. The first
column is the device timestamp in milliseconds (any header name); the
remaining columns are decimal numbers which may use a comma as the
decimal separator. Columns beyond the sensor fields are checked like the
others but not kept.
"""

import logging
import math
from dataclasses import replace
from pathlib import Path
from typing import Dict, List, Sequence, Union

import numpy as np

from ..core.types import SensorSample

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS = (
    "accelX", "accelY", "accelZ",
    "gyroX", "gyroY", "gyroZ",
    "altitude",
)

Z_CHECK_SAMPLES = 20


class ParseError(Exception):
    """Base exception for sample ingestion errors."""
    pass


class EmptyInputError(ParseError):
    """Raised when the input holds no data line after the header."""
    pass


class MalformedRowError(ParseError):
    """Raised when a row cannot be turned into a sample.

    Attributes:
        line: 1-based line number in the input text.
    """

    def __init__(self, line: int, message: str):
        super().__init__(f"line {line}: {message}")
        self.line = line


class MalformedRecordError(ParseError):
    """Raised when a live record lacks a field or carries a bad value."""
    pass


def parse_decimal(text: str) -> float:
    """Parse a decimal number, accepting a comma as decimal separator.

    Raises:
        ValueError: If the text is not a number.
    """
    return float(text.strip().replace(",", "."))


def _column_index(line_no: int, headers: List[str]) -> Dict[str, int]:
    index = {}
    for name in REQUIRED_COLUMNS:
        if name not in headers[1:]:
            raise MalformedRowError(line_no, f"missing required column '{name}'")
        index[name] = headers.index(name, 1)
    return index


def _parse_row(
    line_no: int,
    values: List[str],
    headers: List[str],
    columns: Dict[str, int],
) -> SensorSample:
    """Every field after the timestamp must be a finite number, extra columns included."""
    n_columns = len(headers)
    if len(values) != n_columns:
        raise MalformedRowError(
            line_no, f"expected {n_columns} fields, got {len(values)}"
        )

    try:
        timestamp = int(values[0].strip())
    except ValueError:
        raise MalformedRowError(
            line_no, f"timestamp is not an integer: '{values[0]}'"
        ) from None

    numbers = {}
    for idx in range(1, n_columns):
        try:
            value = parse_decimal(values[idx])
        except ValueError:
            raise MalformedRowError(
                line_no, f"{headers[idx]} is not a number: '{values[idx]}'"
            ) from None
        if not math.isfinite(value):
            raise MalformedRowError(line_no, f"{headers[idx]} is not finite: '{values[idx]}'")
        numbers[idx] = value

    parsed = {name: numbers[idx] for name, idx in columns.items()}

    return SensorSample(
        timestamp=timestamp,
        relative_time=None,
        accel_x=parsed["accelX"],
        accel_y=parsed["accelY"],
        accel_z=parsed["accelZ"],
        gyro_x=parsed["gyroX"],
        gyro_y=parsed["gyroY"],
        gyro_z=parsed["gyroZ"],
        altitude=parsed["altitude"],
    )


def detect_inverted_z(samples: Sequence[SensorSample], n: int = Z_CHECK_SAMPLES) -> bool:
    """True when the mean accel Z of the first n samples is positive.

    At rest the Z axis reads about -1 g under this system's convention, so
    a positive mean means the sensor was mounted (or reports) inverted.
    """
    if not samples:
        return False
    head = samples[:min(n, len(samples))]
    mean_z = float(np.mean([s.accel_z for s in head]))
    return mean_z > 0


def correct_inverted_z(
    samples: Sequence[SensorSample],
    n: int = Z_CHECK_SAMPLES,
) -> List[SensorSample]:
    """Negate accel Z on every sample when the first n samples read inverted.

    Applied once per batch, never per streaming sample.
    """
    if not detect_inverted_z(samples, n):
        return list(samples)

    logger.info(
        "Accelerometer Z axis reads inverted over the first %d samples, "
        "flipping sign for %d samples", min(n, len(samples)), len(samples)
    )
    return [replace(s, accel_z=-s.accel_z) for s in samples]


def parse(
    raw_text: str,
    auto_correct_z: bool = True,
    z_check_samples: int = Z_CHECK_SAMPLES,
) -> List[SensorSample]:
    """Parse a tab-separated record text into ordered samples.

    Args:
        raw_text: Header line plus data lines.
        auto_correct_z: Apply the inverted Z axis heuristic.
        z_check_samples: Number of leading samples inspected by the heuristic.

    Returns:
        Samples ordered by time, relative_time in seconds from the first.

    Raises:
        EmptyInputError: If no data line follows the header.
        MalformedRowError: If any row is malformed; no partial result.
    """
    lines = [
        (line_no, line)
        for line_no, line in enumerate(raw_text.splitlines(), start=1)
        if line.strip()
    ]
    if len(lines) < 2:
        raise EmptyInputError("no data rows after the header")

    header_no, header_line = lines[0]
    headers = [h.strip() for h in header_line.split("\t")]
    columns = _column_index(header_no, headers)

    samples = [
        _parse_row(line_no, line.split("\t"), headers, columns)
        for line_no, line in lines[1:]
    ]

    # Stable: equal timestamps keep their input order
    samples.sort(key=lambda s: s.timestamp)
    start = samples[0].timestamp
    samples = [
        replace(s, relative_time=(s.timestamp - start) / 1000.0)
        for s in samples
    ]

    if auto_correct_z:
        samples = correct_inverted_z(samples, z_check_samples)

    logger.debug("Parsed %d samples spanning %.3f s",
                 len(samples), samples[-1].relative_time)
    return samples


def parse_file(
    path: Union[str, Path],
    auto_correct_z: bool = True,
    z_check_samples: int = Z_CHECK_SAMPLES,
) -> List[SensorSample]:
    """Read a UTF-8 record file and parse it."""
    with open(path, "r", encoding="utf-8") as f:
        text = f.read()
    logger.info("Loading flight record %s", path)
    return parse(text, auto_correct_z=auto_correct_z, z_check_samples=z_check_samples)
