"""Live telemetry sources."""

from ..stream.producer import SourceError
from .mock_source import MockRocketSource

__all__ = ["MockRocketSource", "SourceError"]
