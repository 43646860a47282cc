#!/usr/bin/env python3
"""Log Pairing Service — Entry Point."""

import argparse
import logging
import os
import signal
import sys

# Ensure the package is importable when run as `python log_pairing/main.py`
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from log_pairing.config import LOG_LEVELS, load_config, load_yaml_config
from log_pairing.coordinator import PairingCoordinator
from log_pairing.diagnostics import report_pending, write_pending_dump
from log_pairing.errors import StoreConnectionError
from log_pairing.source import resolve_log_file

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_STARTUP_FAILURE = 1
EXIT_DEGRADED = 2


def build_cli_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Log Pairing Service")
    parser.add_argument("input_dir", help="Directory containing logfile.txt")
    parser.add_argument(
        "db_path", nargs="?", default=None,
        help="SQLite database file (default: db/db-<epoch millis>.sqlite)",
    )
    parser.add_argument("--workers", type=int, default=None,
                        help="Worker threads (default: cpu count - 1, at least 1)")
    parser.add_argument("--threshold", type=int, default=None,
                        help="Alert when a pair's duration exceeds this (default: 4)")
    parser.add_argument("--grace", type=float, default=None,
                        help="Seconds to wait for unmatched records before stopping")
    parser.add_argument("--max-pending", type=int, default=None,
                        help="Evict the oldest unmatched records beyond this count")
    parser.add_argument("--max-age", type=float, default=None,
                        help="Evict unmatched records older than this many seconds")
    parser.add_argument("--dump-file", default=None,
                        help="Write unmatched records to this JSON file at shutdown")
    parser.add_argument("--config", default=None, help="Path to YAML config file")
    parser.add_argument("--log-level", default=None, choices=LOG_LEVELS,
                        help="Logging level (default: INFO)")
    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_cli_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [PAIRING] %(levelname)s %(message)s",
        stream=sys.stderr,
    )

    try:
        config = load_config(args, load_yaml_config(args.config))
    except ValueError as e:
        logger.error("Invalid configuration: %s", e)
        return EXIT_STARTUP_FAILURE
    logging.getLogger().setLevel(config.log_level)
    logger.info("Config: input_dir=%s, db_path=%s, workers=%s, threshold=%d",
                config.input_dir, config.db_path, config.workers or "auto",
                config.alert_threshold)

    log_file = resolve_log_file(config.input_dir, config.log_filename)
    if not os.path.isfile(log_file):
        logger.error("Log file not found: %s", log_file)
        return EXIT_STARTUP_FAILURE

    coordinator = PairingCoordinator(config)

    def _signal_handler(sig, frame):
        logger.info("Shutdown signal received, stopping...")
        coordinator.request_stop()

    previous = {
        sig: signal.signal(sig, _signal_handler)
        for sig in (signal.SIGINT, signal.SIGTERM)
    }
    try:
        coordinator.start()
        summary = coordinator.run_file(log_file)
    except StoreConnectionError as e:
        logger.error("Startup failed: %s", e)
        return EXIT_STARTUP_FAILURE
    except (OSError, ValueError) as e:
        logger.error("Reading %s failed: %s", log_file, e)
        return EXIT_STARTUP_FAILURE
    finally:
        for sig, handler in previous.items():
            signal.signal(sig, handler)

    report_pending(coordinator.index)
    if config.dump_file:
        write_pending_dump(coordinator.index, config.dump_file)

    logger.info(
        "Stats: %d lines, %d pairs written, %d malformed, %d write failures, %d unmatched",
        summary.lines, summary.pairs_written, summary.decode_errors,
        summary.write_failures, summary.orphans,
    )
    if summary.degraded or summary.undrained:
        logger.error("Run finished degraded")
        return EXIT_DEGRADED
    logger.info("Log Pairing Service stopped.")
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
