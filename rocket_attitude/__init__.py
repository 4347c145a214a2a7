"""Rocket attitude estimation from accelerometer and gyroscope telemetry."""

from .core import Config, SensorSample, load_config
from .fusion import create_strategy, fuse
from .ingestion import parse, parse_file
from .stream import FusionSession, LiveSampleProducer

__version__ = "0.1.0"

__all__ = [
    "Config",
    "SensorSample",
    "load_config",
    "create_strategy",
    "fuse",
    "parse",
    "parse_file",
    "FusionSession",
    "LiveSampleProducer",
]
