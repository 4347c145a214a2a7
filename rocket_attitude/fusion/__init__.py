"""Orientation filters for rocket attitude estimation."""

from .base import (
    FusionStrategy,
    compute_dt,
    clamp_dt,
    wrap_angle,
    accel_tilt,
)
from .compensation import compensate, angular_acceleration, compensate_sample_accel
from .complementary import ComplementaryFilter
from .kalman import KalmanFilter
from .madgwick import MadgwickFilter, madgwick_step
from .factory import STRATEGIES, create_strategy, fuse

__all__ = [
    "FusionStrategy",
    "compute_dt",
    "clamp_dt",
    "wrap_angle",
    "accel_tilt",
    "compensate",
    "angular_acceleration",
    "compensate_sample_accel",
    "ComplementaryFilter",
    "KalmanFilter",
    "MadgwickFilter",
    "madgwick_step",
    "STRATEGIES",
    "create_strategy",
    "fuse",
]
