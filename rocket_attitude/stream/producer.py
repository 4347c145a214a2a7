"""Live sample producer: poller thread, bounded queue, consumer thread.

The poller fetches records from a live source at a fixed interval and
parses them into samples; the consumer drains the queue in arrival order
into a FusionSession. Stopping the producer never blocks the session.
"""

import logging
import queue
import threading
import time
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Protocol

from ..core.config import Config
from ..core.types import SensorSample
from ..ingestion.live import LiveRecordParser
from ..ingestion.records import ParseError
from .session import FusionSession, InvalidSampleError

logger = logging.getLogger(__name__)


class SourceError(Exception):
    """A live source failed to deliver a record."""


class SampleSource(Protocol):
    """Anything that returns one telemetry record per fetch() call."""

    def fetch(self) -> Mapping[str, Any]:
        ...


@dataclass
class ProducerStats:
    """Counters for one producer run."""
    polled: int = 0
    pushed: int = 0
    dropped: int = 0
    rejected: int = 0
    retries: int = 0

    def to_dict(self) -> dict:
        """Counters as a plain dict."""
        return {
            "polled": self.polled,
            "pushed": self.pushed,
            "dropped": self.dropped,
            "rejected": self.rejected,
            "retries": self.retries,
        }


class LiveSampleProducer:
    """Feeds a FusionSession from a polled live source.

    Example:
        with LiveSampleProducer(MockRocketSource(), session, config):
            time.sleep(5.0)
    """

    def __init__(
        self,
        source: SampleSource,
        session: FusionSession,
        config: Config,
        parser: Optional[LiveRecordParser] = None,
    ):
        """Initialize producer.

        Args:
            source: Live record source.
            session: Session receiving the samples.
            config: System configuration with live settings.
            parser: Record parser; a fresh one per producer by default.
        """
        self._source = source
        self._session = session
        self._live_cfg = config.live
        self._parser = parser or LiveRecordParser()

        self._queue: "queue.Queue[SensorSample]" = queue.Queue(maxsize=self._live_cfg.queue_size)
        self._stop_event = threading.Event()
        self._poller: Optional[threading.Thread] = None
        self._consumer: Optional[threading.Thread] = None
        self._stats_lock = threading.Lock()
        self._stats = ProducerStats()
        self.last_error: Optional[Exception] = None

    @property
    def is_running(self) -> bool:
        """True while the poller thread is alive."""
        return self._poller is not None and self._poller.is_alive()

    @property
    def stats(self) -> ProducerStats:
        """Snapshot of the producer counters."""
        with self._stats_lock:
            return ProducerStats(**self._stats.to_dict())

    def start(self) -> None:
        """Start polling and consuming.

        Raises:
            RuntimeError: If the producer is already running.
        """
        if self.is_running:
            raise RuntimeError("Producer already running")

        self._stop_event.clear()
        self.last_error = None
        self._poller = threading.Thread(target=self._poll_loop, name="sample-poller", daemon=True)
        self._consumer = threading.Thread(target=self._consume_loop, name="sample-consumer", daemon=True)
        self._consumer.start()
        self._poller.start()
        logger.info("Live producer started (interval=%.3fs)", self._live_cfg.poll_interval_s)

    def stop(self, timeout: Optional[float] = 2.0) -> None:
        """Signal both threads to stop and wait for them.

        Samples already queued are still pushed to the session.
        """
        self._stop_event.set()
        for thread in (self._poller, self._consumer):
            if thread is not None and thread is not threading.current_thread():
                thread.join(timeout)
        logger.info("Live producer stopped: %s", self.stats.to_dict())

    def __enter__(self) -> "LiveSampleProducer":
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.stop()

    def _fetch(self) -> Optional[Mapping[str, Any]]:
        """Fetch one record, retrying a failing source.

        Returns:
            The record, or None once retries are exhausted.
        """
        for attempt in range(1, self._live_cfg.max_retries + 1):
            try:
                return self._source.fetch()
            except SourceError as e:
                self.last_error = e
                with self._stats_lock:
                    self._stats.retries += 1
                logger.warning(
                    "Source fetch failed (attempt %d/%d): %s",
                    attempt, self._live_cfg.max_retries, e,
                )
                if self._stop_event.is_set():
                    return None
        return None

    def _poll_loop(self) -> None:
        interval = self._live_cfg.poll_interval_s
        while not self._stop_event.is_set():
            started = time.monotonic()

            record = self._fetch()
            if record is None:
                if not self._stop_event.is_set():
                    logger.error("Source failed %d times, stopping producer", self._live_cfg.max_retries)
                self._stop_event.set()
                break

            with self._stats_lock:
                self._stats.polled += 1

            try:
                sample = self._parser.parse(record)
            except ParseError as e:
                logger.warning("Rejected live record: %s", e)
                with self._stats_lock:
                    self._stats.rejected += 1
            else:
                try:
                    self._queue.put_nowait(sample)
                except queue.Full:
                    logger.warning("Sample queue full, dropping t=%d", sample.timestamp)
                    with self._stats_lock:
                        self._stats.dropped += 1

            elapsed = time.monotonic() - started
            self._stop_event.wait(max(0.0, interval - elapsed))

    def _consume_loop(self) -> None:
        while True:
            try:
                sample = self._queue.get(timeout=0.05)
            except queue.Empty:
                if self._stop_event.is_set() and not self._poller_alive():
                    break
                continue

            try:
                self._session.push(sample)
            except InvalidSampleError as e:
                logger.warning("Rejected live sample t=%d: %s", sample.timestamp, e)
                with self._stats_lock:
                    self._stats.rejected += 1
            else:
                with self._stats_lock:
                    self._stats.pushed += 1
            finally:
                self._queue.task_done()

    def _poller_alive(self) -> bool:
        return self._poller is not None and self._poller.is_alive()
