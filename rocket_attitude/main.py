#!/usr/bin/env python3
"""Command line entry point for rocket attitude estimation.

replay: fuse a recorded telemetry file and write one line per sample.
live:   fuse a live source and print the latest orientation as JSON.
"""

import argparse
import json
import logging
import signal
import sys
import time
from typing import List, Optional, TextIO

from .communication import MockRocketSource
from .core import Config, ConfigError, SensorSample, load_config
from .ingestion import ParseError, parse_file
from .monitoring import FusionTimingMonitor
from .stream import FusionSession, LiveSampleProducer

logger = logging.getLogger(__name__)

SHUTDOWN_REQUESTED = False

TSV_COLUMNS = (
    "timestamp", "relative_time",
    "accel_x", "accel_y", "accel_z",
    "gyro_x", "gyro_y", "gyro_z",
    "altitude", "roll", "pitch", "yaw",
    "comp_accel_x", "comp_accel_y", "comp_accel_z",
)


def signal_handler(signum, frame):
    """Handle shutdown signals gracefully."""
    global SHUTDOWN_REQUESTED
    SHUTDOWN_REQUESTED = True
    logger.info("Shutdown requested")


def setup_logging(verbose: bool = False) -> None:
    """Configure logging for the application.

    Args:
        verbose: If True, set DEBUG level; otherwise INFO.
    """
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        stream=sys.stderr,
    )


def format_tsv(sample: SensorSample) -> str:
    """Tab-separated line in TSV_COLUMNS order; missing values are empty."""
    data = sample.to_dict()
    return "\t".join(
        "" if data.get(name) is None else str(data[name]) for name in TSV_COLUMNS
    )


def write_samples(samples: List[SensorSample], fmt: str, out: TextIO) -> None:
    """Write fused samples as JSON lines or TSV with a header."""
    if fmt == "tsv":
        out.write("\t".join(TSV_COLUMNS) + "\n")
        for sample in samples:
            out.write(format_tsv(sample) + "\n")
    else:
        for sample in samples:
            out.write(json.dumps(sample.to_dict()) + "\n")
    out.flush()


def run_replay(config: Config, path: str, fmt: str = "json", out: Optional[TextIO] = None) -> int:
    """Fuse a recorded file in one batch.

    Returns:
        Exit code (0 for success, non-zero for error).
    """
    out = out or sys.stdout
    try:
        samples = parse_file(
            path,
            auto_correct_z=config.ingestion.auto_correct_z,
            z_check_samples=config.ingestion.z_check_samples,
        )
    except ParseError as e:
        logger.error("Cannot parse %s: %s", path, e)
        return 1
    except OSError as e:
        logger.error("Cannot read %s: %s", path, e)
        return 1

    monitor = FusionTimingMonitor(config)
    session = FusionSession(config, monitor=monitor)
    fused = session.load_batch(samples)
    write_samples(fused, fmt, out)

    stats = monitor.get_stats()
    logger.info("Fused %d samples with %s filter in %.2f ms",
                len(fused), session.strategy_kind, stats.max_pass_ms)
    return 0


def run_live(config: Config, duration: Optional[float] = None, out: Optional[TextIO] = None) -> int:
    """Fuse the synthetic live source until interrupted or duration elapses.

    Returns:
        Exit code.
    """
    out = out or sys.stdout
    monitor = FusionTimingMonitor(config)
    session = FusionSession(config, monitor=monitor)
    producer = LiveSampleProducer(MockRocketSource(), session, config)

    emit_interval = 1.0 / config.output.emit_rate_hz
    started = time.monotonic()
    last_emitted: Optional[SensorSample] = None

    try:
        with producer:
            while not SHUTDOWN_REQUESTED:
                if duration is not None and time.monotonic() - started >= duration:
                    break
                if not producer.is_running:
                    logger.error("Live source stopped: %s", producer.last_error)
                    break

                latest = session.latest()
                if latest is not None and latest is not last_emitted:
                    out.write(json.dumps(latest.to_dict()) + "\n")
                    out.flush()
                    last_emitted = latest
                time.sleep(emit_interval)

    except KeyboardInterrupt:
        logger.info("Interrupted by user")

    finally:
        stats = monitor.get_stats()
        producer_stats = producer.stats

        logger.info("Final statistics:")
        logger.info("  Fusion passes: %d (mean %.2f ms)", stats.total_passes, stats.mean_pass_ms)
        logger.info("  Samples: %d polled, %d pushed", producer_stats.polled, producer_stats.pushed)
        logger.info("  Dropped: %d, rejected: %d, retries: %d",
                    producer_stats.dropped, producer_stats.rejected, producer_stats.retries)

    return 0


def build_parser() -> argparse.ArgumentParser:
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "-c", "--config",
        type=str,
        default=None,
        help="Path to configuration file",
    )
    common.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )
    common.add_argument(
        "--filter",
        choices=("complementary", "kalman", "madgwick"),
        default=None,
        help="Fusion filter (overrides configuration)",
    )

    parser = argparse.ArgumentParser(
        description="Rocket attitude estimation from IMU telemetry"
    )
    commands = parser.add_subparsers(dest="command", required=True)

    replay = commands.add_parser("replay", parents=[common], help="Fuse a recorded telemetry file")
    replay.add_argument("file", help="Tab-separated telemetry file")
    replay.add_argument(
        "--format",
        choices=("json", "tsv"),
        default="json",
        help="Output format",
    )

    live = commands.add_parser("live", parents=[common], help="Fuse a live telemetry source")
    live.add_argument(
        "--mock",
        action="store_true",
        help="Use the synthetic rocket source",
    )
    live.add_argument(
        "--duration",
        type=float,
        default=None,
        help="Stop after this many seconds",
    )
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Application entry point.

    Returns:
        Exit code.
    """
    args = build_parser().parse_args(argv)

    setup_logging(verbose=args.verbose)

    try:
        config = load_config(args.config)
        if args.filter is not None:
            config.fusion.filter = args.filter
        config.validate()
    except FileNotFoundError as e:
        logger.error("Configuration error: %s", e)
        return 1
    except ConfigError as e:
        logger.error("Invalid configuration: %s", e)
        return 1

    if args.command == "replay":
        return run_replay(config, args.file, fmt=args.format)

    if not args.mock:
        logger.error("Only the synthetic source is available, pass --mock")
        return 1

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)
    return run_live(config, duration=args.duration)


if __name__ == "__main__":
    sys.exit(main())
