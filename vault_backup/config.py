"""
Configuration management for Vault Backup.

All configuration is done via environment variables - no config files inside containers.
This module provides typed configuration classes with validation.

Environment:
    BACKUP_SOURCE_DIR   directory to archive (default /data)
    BACKUP_TARGET_DIR   directory receiving archives (default /backups)
    BACKUP_VERBOSE      log each archived entry (default true)
    ZSTD_LEVEL          compression level 1-22 (default 19)
    ZSTD_LONG_DISTANCE  long-distance matching (default true)
    LOG_LEVEL           DEBUG, INFO, WARNING, ERROR (default INFO)
    LOG_FORMAT          text or json (default text)

Invariants:
    - All settings have sensible defaults for the container image (/data -> /backups)
    - Command-line flags override environment values, never the other way around
    - The target directory must not live inside the source directory

How to change safely:
    - Add new settings with defaults that maintain backward compatibility
    - Document new settings in the Environment list above
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field, replace
from pathlib import Path

from .archive.writer import DEFAULT_COMPRESSION_LEVEL

logger = logging.getLogger(__name__)

MIN_COMPRESSION_LEVEL = 1
MAX_COMPRESSION_LEVEL = 22
LOG_FORMATS = ("text", "json")


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in ("true", "1", "yes")


@dataclass(frozen=True)
class ArchiveConfig:
    """Archive job configuration.

    Attributes:
        source_dir: Directory to archive
        target_dir: Directory receiving archives
        verbose: Log every archived entry at INFO
        compression_level: zstd compression level (1-22)
        long_distance: Enable zstd long-distance matching
    """

    source_dir: str = "/data"
    target_dir: str = "/backups"
    verbose: bool = True
    compression_level: int = DEFAULT_COMPRESSION_LEVEL
    long_distance: bool = True

    @classmethod
    def from_env(cls) -> ArchiveConfig:
        """Load configuration from environment variables."""
        return cls(
            source_dir=os.getenv("BACKUP_SOURCE_DIR", "/data"),
            target_dir=os.getenv("BACKUP_TARGET_DIR", "/backups"),
            verbose=_env_bool("BACKUP_VERBOSE", "true"),
            compression_level=int(os.getenv("ZSTD_LEVEL", str(DEFAULT_COMPRESSION_LEVEL))),
            long_distance=_env_bool("ZSTD_LONG_DISTANCE", "true"),
        )


@dataclass(frozen=True)
class ObservabilityConfig:
    """Logging configuration.

    Attributes:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        log_format: Log format (text, json)
    """

    log_level: str = "INFO"
    log_format: str = "text"

    @classmethod
    def from_env(cls) -> ObservabilityConfig:
        """Load configuration from environment variables."""
        return cls(
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            log_format=os.getenv("LOG_FORMAT", "text").lower(),
        )


@dataclass
class BackupConfig:
    """Complete backup configuration.

    Attributes:
        archive: Archive job configuration
        observability: Logging configuration
    """

    archive: ArchiveConfig = field(default_factory=ArchiveConfig)
    observability: ObservabilityConfig = field(default_factory=ObservabilityConfig)

    @classmethod
    def from_env(cls) -> BackupConfig:
        """Load complete configuration from environment variables.

        Raises:
            ValueError: If configuration is missing or invalid.
        """
        try:
            archive = ArchiveConfig.from_env()
        except ValueError as e:
            raise ValueError(f"Invalid ZSTD_LEVEL: {e}") from e

        config = cls(archive=archive, observability=ObservabilityConfig.from_env())
        config.validate()
        return config

    def with_overrides(
        self,
        source_dir: str | None = None,
        target_dir: str | None = None,
        verbose: bool | None = None,
        compression_level: int | None = None,
    ) -> BackupConfig:
        """Return a validated copy with command-line values applied."""
        changes = {
            key: value
            for key, value in (
                ("source_dir", source_dir),
                ("target_dir", target_dir),
                ("verbose", verbose),
                ("compression_level", compression_level),
            )
            if value is not None
        }
        config = BackupConfig(
            archive=replace(self.archive, **changes),
            observability=self.observability,
        )
        config.validate()
        return config

    def validate(self) -> None:
        """Validate configuration consistency.

        Raises:
            ValueError: If configuration is invalid.
        """
        archive = self.archive
        if not archive.source_dir:
            raise ValueError("BACKUP_SOURCE_DIR must not be empty")
        if not archive.target_dir:
            raise ValueError("BACKUP_TARGET_DIR must not be empty")

        if not MIN_COMPRESSION_LEVEL <= archive.compression_level <= MAX_COMPRESSION_LEVEL:
            raise ValueError(
                f"ZSTD_LEVEL must be between {MIN_COMPRESSION_LEVEL} and "
                f"{MAX_COMPRESSION_LEVEL}, got {archive.compression_level}"
            )

        if self.observability.log_format not in LOG_FORMATS:
            raise ValueError(
                f"Invalid LOG_FORMAT '{self.observability.log_format}'. Must be one of: text, json"
            )

        source = Path(archive.source_dir).resolve()
        target = Path(archive.target_dir).resolve()
        if target == source or source in target.parents:
            # Staging files would be swept into the archive being written
            raise ValueError(
                f"BACKUP_TARGET_DIR '{archive.target_dir}' must not be inside "
                f"BACKUP_SOURCE_DIR '{archive.source_dir}'"
            )

    def log_config(self) -> None:
        """Log configuration."""
        logger.info(
            "Backup configuration loaded",
            extra={
                "source_dir": self.archive.source_dir,
                "target_dir": self.archive.target_dir,
                "verbose": self.archive.verbose,
                "compression_level": self.archive.compression_level,
                "long_distance": self.archive.long_distance,
                "log_level": self.observability.log_level,
            },
        )
