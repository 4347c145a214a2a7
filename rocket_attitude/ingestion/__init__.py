"""Sample ingestion from record files and live telemetry."""

from .records import (
    ParseError,
    EmptyInputError,
    MalformedRowError,
    MalformedRecordError,
    parse,
    parse_file,
    parse_decimal,
    detect_inverted_z,
    correct_inverted_z,
)
from .live import LiveRecordParser

__all__ = [
    "ParseError",
    "EmptyInputError",
    "MalformedRowError",
    "MalformedRecordError",
    "parse",
    "parse_file",
    "parse_decimal",
    "detect_inverted_z",
    "correct_inverted_z",
    "LiveRecordParser",
]
