from __future__ import annotations

from pathlib import Path
from typing import Sequence
import argparse
import logging
import os
import sys

from .config import DEFAULT_SETTINGS_PATH, load_config
from .errors import ConfigError
from .logging_config import configure_logging
from .pipeline import BackupPipeline

logger = logging.getLogger(__name__)

_LOG_LEVELS = ("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="exchange-db-backup",
        description="Dump the PostgreSQL database, compress it, upload it to MinIO and prune old backups.",
    )
    parser.add_argument(
        "--env-file",
        type=Path,
        default=DEFAULT_SETTINGS_PATH,
        help="KEY=VALUE settings file loaded before the environment (default: .env)",
    )
    parser.add_argument(
        "--log-level",
        type=str.upper,
        choices=_LOG_LEVELS,
        default=os.getenv("LOG_LEVEL", "INFO").upper(),
        help="Console log level (default: LOG_LEVEL or INFO)",
    )
    parser.add_argument("--no-color", action="store_true", help="Disable colored level tags")
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(args.log_level, color=not args.no_color and sys.stdout.isatty())

    try:
        config = load_config(settings_path=args.env_file)
    except ConfigError as error:
        logger.error("Invalid configuration: %s", error)
        return 1

    report = BackupPipeline(config=config).run()
    return report.exit_code


def run() -> None:
    sys.exit(main())


if __name__ == "__main__":
    run()
