"""Filter selection by name."""

from typing import Dict, Type

from ..core.config import FILTER_KINDS, ConfigError, FusionConfig
from .base import FusionStrategy
from .complementary import ComplementaryFilter
from .kalman import KalmanFilter
from .madgwick import MadgwickFilter

STRATEGIES: Dict[str, Type[FusionStrategy]] = {
    ComplementaryFilter.name: ComplementaryFilter,
    KalmanFilter.name: KalmanFilter,
    MadgwickFilter.name: MadgwickFilter,
}


def create_strategy(kind: str, config: FusionConfig) -> FusionStrategy:
    """Build a fresh filter of the given kind.

    Raises:
        ConfigError: If the kind is not one of complementary, kalman, madgwick.
    """
    try:
        cls = STRATEGIES[kind]
    except KeyError:
        raise ConfigError(
            f"Unknown filter '{kind}', expected one of {FILTER_KINDS}"
        ) from None
    return cls(config)


def fuse(samples, kind: str, config: FusionConfig):
    """Run one full pass of a freshly built filter over samples."""
    return create_strategy(kind, config).run(samples)
