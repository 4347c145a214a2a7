"""Configuration management for rocket attitude estimation."""

import logging
import os
from dataclasses import dataclass, field, fields, is_dataclass
from pathlib import Path
from typing import List, Optional

import yaml

logger = logging.getLogger(__name__)

FILTER_KINDS = ("complementary", "kalman", "madgwick")
KALMAN_INVERSE_MODES = ("diagonal", "full")
HISTORY_WINDOWS = 10


class ConfigError(ValueError):
    """Raised when a configuration value is outside its domain."""
    pass


@dataclass
class TimingConfig:
    """Time step policy shared by every filter."""
    max_dt_s: float = 0.5
    default_dt_s: float = 0.1


@dataclass
class ComplementaryConfig:
    """Complementary filter configuration."""
    alpha: float = 0.98
    compensate: bool = True


@dataclass
class CompensationConfig:
    """Center-of-mass compensation configuration."""
    sensor_offset_m: List[float] = field(default_factory=lambda: [0.0, 0.0, 0.03])
    gravity: float = 9.80665


@dataclass
class KalmanConfig:
    """Six-state Kalman filter configuration."""
    process_noise: float = 0.01
    angle_measurement_noise: float = 0.1
    rate_measurement_noise: float = 0.01
    initial_angle_variance: float = 1000.0
    initial_rate_variance: float = 100.0
    inverse: str = "diagonal"


@dataclass
class MadgwickConfig:
    """Madgwick filter configuration."""
    beta: float = 0.1


@dataclass
class FusionConfig:
    """Filter selection and per-filter tuning."""
    filter: str = "complementary"
    timing: TimingConfig = field(default_factory=TimingConfig)
    complementary: ComplementaryConfig = field(default_factory=ComplementaryConfig)
    compensation: CompensationConfig = field(default_factory=CompensationConfig)
    kalman: KalmanConfig = field(default_factory=KalmanConfig)
    madgwick: MadgwickConfig = field(default_factory=MadgwickConfig)


@dataclass
class IngestionConfig:
    """Record file ingestion configuration."""
    auto_correct_z: bool = True
    z_check_samples: int = 20


@dataclass
class StreamConfig:
    """Rolling window configuration."""
    window_capacity: int = 300
    incremental: bool = False
    history_capacity: Optional[int] = None  # None: HISTORY_WINDOWS x window_capacity

    @property
    def history_limit(self) -> int:
        """Raw samples kept for re-fusion after a filter switch."""
        if self.history_capacity is None:
            return HISTORY_WINDOWS * self.window_capacity
        return self.history_capacity


@dataclass
class LiveConfig:
    """Live sample polling configuration."""
    poll_interval_s: float = 0.1
    max_retries: int = 3
    queue_size: int = 64


@dataclass
class ValidationConfig:
    """Sample plausibility thresholds."""
    accel_min_g: float = 0.5
    accel_max_g: float = 16.0


@dataclass
class MonitoringConfig:
    """Fusion timing monitoring configuration."""
    window_size: int = 1000
    log_interval_s: float = 10.0


@dataclass
class OutputConfig:
    """Command line output configuration."""
    emit_rate_hz: float = 10.0


@dataclass
class Config:
    """Complete configuration for rocket attitude estimation."""
    fusion: FusionConfig = field(default_factory=FusionConfig)
    ingestion: IngestionConfig = field(default_factory=IngestionConfig)
    stream: StreamConfig = field(default_factory=StreamConfig)
    live: LiveConfig = field(default_factory=LiveConfig)
    validation: ValidationConfig = field(default_factory=ValidationConfig)
    monitoring: MonitoringConfig = field(default_factory=MonitoringConfig)
    output: OutputConfig = field(default_factory=OutputConfig)

    def validate(self) -> "Config":
        """Check every value against its domain.

        Returns:
            The same configuration, for chaining.

        Raises:
            ConfigError: On the first out-of-domain value.
        """
        fusion = self.fusion
        if fusion.filter not in FILTER_KINDS:
            raise ConfigError(
                f"Unknown filter '{fusion.filter}', expected one of {FILTER_KINDS}"
            )
        if not 0.0 <= fusion.complementary.alpha <= 1.0:
            raise ConfigError(f"alpha must be in [0, 1], got {fusion.complementary.alpha}")
        if fusion.madgwick.beta < 0.0:
            raise ConfigError(f"beta must be >= 0, got {fusion.madgwick.beta}")
        if fusion.timing.max_dt_s <= 0.0:
            raise ConfigError(f"max_dt_s must be > 0, got {fusion.timing.max_dt_s}")
        if fusion.timing.default_dt_s <= 0.0:
            raise ConfigError(f"default_dt_s must be > 0, got {fusion.timing.default_dt_s}")
        if fusion.kalman.inverse not in KALMAN_INVERSE_MODES:
            raise ConfigError(
                f"Unknown Kalman inverse '{fusion.kalman.inverse}', "
                f"expected one of {KALMAN_INVERSE_MODES}"
            )
        offset = fusion.compensation.sensor_offset_m
        if len(offset) != 3 or not all(isinstance(v, (int, float)) for v in offset):
            raise ConfigError(f"sensor_offset_m must be 3 numbers, got {offset}")
        if fusion.compensation.gravity <= 0.0:
            raise ConfigError(f"gravity must be > 0, got {fusion.compensation.gravity}")
        if self.stream.window_capacity < 1:
            raise ConfigError(
                f"window_capacity must be >= 1, got {self.stream.window_capacity}"
            )
        history = self.stream.history_capacity
        if history is not None and history < self.stream.window_capacity:
            raise ConfigError(
                f"history_capacity ({history}) must not be smaller than "
                f"window_capacity ({self.stream.window_capacity})"
            )
        if self.ingestion.z_check_samples < 1:
            raise ConfigError(
                f"z_check_samples must be >= 1, got {self.ingestion.z_check_samples}"
            )
        if self.live.poll_interval_s <= 0.0:
            raise ConfigError(f"poll_interval_s must be > 0, got {self.live.poll_interval_s}")
        if self.live.max_retries < 1:
            raise ConfigError(f"max_retries must be >= 1, got {self.live.max_retries}")
        if self.live.queue_size < 1:
            raise ConfigError(f"queue_size must be >= 1, got {self.live.queue_size}")
        if self.output.emit_rate_hz <= 0.0:
            raise ConfigError(f"emit_rate_hz must be > 0, got {self.output.emit_rate_hz}")
        return self


def _dict_to_dataclass(data: dict, cls: type, path: str = "") -> object:
    """Build a dataclass from a mapping, recursing into nested sections."""
    field_types = {f.name: f.type for f in fields(cls)}
    kwargs = {}

    for key, value in data.items():
        if key not in field_types:
            logger.warning("Ignoring unknown configuration key '%s%s'", path, key)
            continue
        field_type = field_types[key]
        if is_dataclass(field_type) and isinstance(value, dict):
            kwargs[key] = _dict_to_dataclass(value, field_type, f"{path}{key}.")
        else:
            kwargs[key] = value

    return cls(**kwargs)


def default_config_path() -> Path:
    """Location of the configuration file shipped with the package."""
    return Path(__file__).parent.parent / "config" / "default.yaml"


def load_config(config_path: Optional[str] = None) -> Config:
    """Load configuration from YAML file.

    Args:
        config_path: Path to configuration file. If None, uses the
            ROCKET_ATTITUDE_CONFIG environment variable, then the packaged
            default file.

    Returns:
        Validated configuration object.

    Raises:
        FileNotFoundError: If specified config file doesn't exist.
        ConfigError: If a value is outside its domain.
    """
    if config_path is None:
        env_path = os.environ.get("ROCKET_ATTITUDE_CONFIG")
        if env_path:
            config_path = env_path
        else:
            default_path = default_config_path()
            if default_path.exists():
                config_path = str(default_path)
            else:
                return Config()

    path = Path(config_path)
    if not path.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f)

    if data is None:
        return Config()

    if not isinstance(data, dict):
        raise ConfigError(f"Configuration root must be a mapping: {config_path}")

    logger.debug("Loaded configuration from %s", path)
    return _dict_to_dataclass(data, Config).validate()
