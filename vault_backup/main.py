"""
Vault Backup - Main entry point.

Runs a single backup of the configured source directory and exits.
Scheduling (cron, Kubernetes CronJob, orchestrator) is the caller's job;
a failed run is retried by running the process again.

Usage:
    vault-backup [--source DIR] [--target DIR] [--level N] [-v | -q]
    python -m vault_backup

Configuration comes from environment variables (see config.py); flags
override them.

Invariants:
    - Exit status 0 only when an archive was published
    - Exactly one success or failure line per run

How to change safely:
    - Keep flag names stable; schedulers invoke them unattended
"""

from __future__ import annotations

import argparse
import logging
import sys

import json_log_formatter

from ._version import __version__
from .archive import ArchiveRequest, Archiver
from .config import BackupConfig

logger = logging.getLogger(__name__)


def setup_logging(config: BackupConfig) -> None:
    """Configure logging based on configuration.

    Args:
        config: Backup configuration
    """
    level = getattr(logging, config.observability.log_level.upper(), logging.INFO)

    if config.observability.log_format == "json":
        formatter = json_log_formatter.JSONFormatter()
    else:
        formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")

    handler = logging.StreamHandler()
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers = [handler]


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="vault-backup",
        description="Create a dated, checksummed zstd tarball of a directory",
    )
    parser.add_argument("--source", help="Directory to archive (env BACKUP_SOURCE_DIR)")
    parser.add_argument("--target", help="Directory for archives (env BACKUP_TARGET_DIR)")
    parser.add_argument("--level", type=int, help="zstd compression level 1-22 (env ZSTD_LEVEL)")
    verbosity = parser.add_mutually_exclusive_group()
    verbosity.add_argument(
        "-v",
        "--verbose",
        dest="verbose",
        action="store_const",
        const=True,
        help="Log every archived entry",
    )
    verbosity.add_argument(
        "-q",
        "--quiet",
        dest="verbose",
        action="store_const",
        const=False,
        help="Only log the outcome",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def main(argv: list[str] | None = None) -> None:
    """Main entry point."""
    args = build_parser().parse_args(argv)

    try:
        config = BackupConfig.from_env().with_overrides(
            source_dir=args.source,
            target_dir=args.target,
            verbose=args.verbose,
            compression_level=args.level,
        )
    except ValueError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        sys.exit(1)

    setup_logging(config)
    config.log_config()

    archiver = Archiver(
        compression_level=config.archive.compression_level,
        long_distance=config.archive.long_distance,
        verbose=config.archive.verbose,
    )

    logger.info("--- Starting archive process ---")
    result = archiver.run(ArchiveRequest(config.archive.source_dir, config.archive.target_dir))

    if not result.success:
        print(f"Backup failed: {result.error}", file=sys.stderr)
        sys.exit(1)
    sys.exit(0)


if __name__ == "__main__":
    main()
