"""Streaming: fusion session and live producer."""

from .session import FusionSession, InvalidSampleError
from .producer import LiveSampleProducer, ProducerStats, SampleSource, SourceError

__all__ = [
    "FusionSession",
    "InvalidSampleError",
    "LiveSampleProducer",
    "ProducerStats",
    "SampleSource",
    "SourceError",
]
