"""
Error types for Vault Backup.

This module defines all exception types raised by the archival pipeline:
- BackupError: Base exception
- InvalidSourceError: Source path missing or not a directory
- TargetUnavailableError: Target directory cannot be created
- TempFileError: Staging file cannot be created
- WalkError: Traversal or content read failure
- PipelineCloseError: Tar or zstd layer failed to flush
- PlacementError: Rename onto the final path failed

Invariants:
    - All errors inherit from BackupError
    - Errors include the failing operation and path
    - The core never retries; errors propagate to the caller
"""

from __future__ import annotations

from typing import Any


class BackupError(Exception):
    """Base exception for all backup errors.

    Attributes:
        message: Error message
        code: Error code for programmatic handling
        details: Additional error context
    """

    code = "BACKUP_ERROR"

    def __init__(
        self,
        message: str,
        path: str | None = None,
        operation: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.path = path
        self.operation = operation
        self.details = {"path": path, "operation": operation, **(details or {})}

    def __str__(self) -> str:
        cause = self.__cause__
        if cause is not None:
            return f"{self.message}: {cause}"
        return self.message


class InvalidSourceError(BackupError):
    """Source path cannot be archived.

    Raised when:
    - Source path does not exist or cannot be statted
    - Source path is not a directory
    """

    code = "INVALID_SOURCE"


class TargetUnavailableError(BackupError):
    """Target directory cannot be created.

    Raised when:
    - Permission is denied on a parent directory
    - The path collides with an existing non-directory
    """

    code = "TARGET_UNAVAILABLE"


class TempFileError(BackupError):
    """Staging file could not be created in the target directory."""

    code = "TEMP_FILE_FAILURE"


class WalkError(BackupError):
    """Reading an entry's metadata or content failed during traversal.

    Aborts the whole run; no partial archive is ever published.
    """

    code = "WALK_FAILURE"


class PipelineCloseError(BackupError):
    """Serialization or compression layer failed to flush or close.

    The staging file is known to be incomplete and is discarded.
    """

    code = "PIPELINE_CLOSE_FAILURE"


class PlacementError(BackupError):
    """Renaming the staging file onto its final name failed."""

    code = "PLACEMENT_FAILURE"
