"""Argument parsing, configuration loading, and daemon bootstrap."""

from __future__ import annotations

import argparse
import logging
import sys

from .config import load_config
from .daemon import Daemon
from .exceptions import ConfigError, ReconcilerError
from .logging_config import configure_logging

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="elb-reconciler",
        description="Keep load balancer membership and availability zones in line with the fleet inventory",
    )
    parser.add_argument(
        "-c", "--config",
        required=True,
        help="Path to the YAML configuration file",
    )
    parser.add_argument(
        "--once",
        action="store_true",
        help="Run a single reconciliation pass and exit",
    )
    parser.add_argument(
        "--validate",
        action="store_true",
        help="Validate the configuration file and exit",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help=(
            "Log the operations a pass would apply without applying them. "
            "Zone changes are computed against the current, unchanged membership"
        ),
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    # Load config (minimal logging until config is loaded)
    try:
        config = load_config(args.config)
    except ConfigError as exc:
        print(f"Configuration error: {exc}", file=sys.stderr)
        return 1

    configure_logging(config.logging)

    if args.validate:
        logger.info("Configuration is valid")
        return 0

    try:
        daemon = Daemon(config, dry_run=args.dry_run)
        if args.once:
            logger.info("Running single reconciliation pass (--once)")
            updated = daemon.run_once()
            logger.info("Membership %s", "updated" if updated else "unchanged", extra={"updated": updated})
        else:
            daemon.run()
    except ReconcilerError as exc:
        logger.error("Fatal error: %s", exc)
        return 1
    except KeyboardInterrupt:
        logger.info("Interrupted")
        return 0

    return 0


if __name__ == "__main__":
    sys.exit(main())
