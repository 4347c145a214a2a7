"""Performance monitoring module for rocket attitude estimation."""

from .metrics import FusionTimingMonitor, FusionStats, PassMetrics

__all__ = ["FusionTimingMonitor", "FusionStats", "PassMetrics"]
