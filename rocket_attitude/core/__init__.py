"""Core module for rocket attitude estimation."""

from .types import (
    SensorSample,
    Quaternion,
    EulerAngles,
    ValidationResult,
)
from .validation import SampleValidator, validate_dt
from .quaternion import QuaternionOps
from .config import Config, ConfigError, load_config

__all__ = [
    "SensorSample",
    "Quaternion",
    "EulerAngles",
    "ValidationResult",
    "SampleValidator",
    "validate_dt",
    "QuaternionOps",
    "Config",
    "ConfigError",
    "load_config",
]
