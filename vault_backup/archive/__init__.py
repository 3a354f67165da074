"""
Archive module for Vault Backup.

This module turns a directory tree into a single compressed archive:
- walker: lazy, deterministic depth-first traversal
- writer: tar framing, zstd compression and CRC32 fan-out
- staging: temp file creation and atomic placement
- archiver: the end-to-end pipeline

Invariants:
    - Archives are published atomically or not at all
    - Archive names embed the date and the CRC32 of the archive bytes
    - Archive format is standard tar inside a standard zstd frame
"""

from .archiver import (
    ArchiveRequest,
    ArchiveResult,
    Archiver,
    check_target_outside_source,
    create_dated_archive,
    ensure_target,
    validate_source,
)
from .staging import StagingFile
from .walker import FileEntry, walk_tree
from .writer import (
    ArchiveWriter,
    ChecksumWriter,
    archive_filename,
    parse_archive_filename,
)

__all__ = [
    "ArchiveRequest",
    "ArchiveResult",
    "ArchiveWriter",
    "Archiver",
    "ChecksumWriter",
    "FileEntry",
    "StagingFile",
    "archive_filename",
    "check_target_outside_source",
    "create_dated_archive",
    "ensure_target",
    "parse_archive_filename",
    "validate_source",
    "walk_tree",
]
