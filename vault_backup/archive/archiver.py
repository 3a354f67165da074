"""
Directory archiver for Vault Backup.

The Archiver turns a source directory into one dated, checksummed
.tar.zstd file in a target directory:
1. Validate the source directory and create the target directory
2. Open a staging file in the target directory
3. Stream every walked entry through tar -> zstd -> (file + CRC32)
4. Close the chain, name the archive from today's date and the CRC32
5. Atomically rename the staging file onto that name

Archive format:
    <target>/<mm-dd-yyyy>-<crc32 8 hex digits>.tar.zstd

Invariants:
    - Either one complete archive is published or none is
    - No staging file survives a run
    - The core never retries; the scheduler re-runs the process

How to change safely:
    - Keep validation ahead of any filesystem side effect
    - Test failure paths for leftover staging files
"""

from __future__ import annotations

import asyncio
import logging
import os
import stat
import time
from collections.abc import Callable, Iterable, Iterator
from dataclasses import dataclass
from datetime import date
from pathlib import Path

from ..errors import BackupError, InvalidSourceError, TargetUnavailableError, WalkError
from .staging import StagingFile
from .walker import FileEntry, walk_tree
from .writer import DEFAULT_COMPRESSION_LEVEL, ArchiveWriter, ChecksumWriter, archive_filename

logger = logging.getLogger(__name__)

TARGET_DIR_MODE = 0o755


@dataclass(frozen=True)
class ArchiveRequest:
    """One backup job.

    Attributes:
        source_path: Directory to archive
        target_dir: Directory receiving the archive (created if absent)
    """

    source_path: str
    target_dir: str


@dataclass
class ArchiveResult:
    """Result of an archive run.

    Attributes:
        success: Whether an archive was published
        final_path: Published archive path
        checksum: CRC32 of the archive bytes (8 hex digits)
        size_bytes: Archive size on disk
        entry_count: Number of entries written
        duration_ms: Total run duration
        error: Error message if failed
        error_code: BackupError code if failed
    """

    success: bool
    final_path: str | None = None
    checksum: str | None = None
    size_bytes: int = 0
    entry_count: int = 0
    duration_ms: int = 0
    error: str | None = None
    error_code: str | None = None


def validate_source(source_path: str | os.PathLike[str]) -> Path:
    """Check that source_path is an existing directory.

    Raises:
        InvalidSourceError: If the path cannot be statted or is not a directory
    """
    if not os.fspath(source_path):
        raise InvalidSourceError("source path is empty", path="", operation="stat")

    path = Path(source_path)
    try:
        info = os.stat(path)
    except OSError as e:
        raise InvalidSourceError(
            f"failed to read source path '{path}'", path=str(path), operation="stat"
        ) from e

    if not stat.S_ISDIR(info.st_mode):
        raise InvalidSourceError(
            f"source path '{path}' is not a directory", path=str(path), operation="stat"
        )
    return path


def ensure_target(target_dir: str | os.PathLike[str]) -> Path:
    """Create target_dir and any missing parents.

    Raises:
        TargetUnavailableError: If the directory cannot be created
    """
    if not os.fspath(target_dir):
        raise TargetUnavailableError("target directory is empty", path="", operation="mkdir")

    path = Path(target_dir)
    try:
        path.mkdir(mode=TARGET_DIR_MODE, parents=True, exist_ok=True)
    except OSError as e:
        raise TargetUnavailableError(
            f"failed to create target directory '{path}'", path=str(path), operation="mkdir"
        ) from e
    return path


def check_target_outside_source(source: Path, target: Path) -> None:
    """Reject a target that is the source or lies beneath it.

    Raises:
        TargetUnavailableError: If target resolves into source
    """
    resolved_source = source.resolve()
    resolved_target = target.resolve()
    if resolved_target == resolved_source or resolved_source in resolved_target.parents:
        # The staging file would be walked into its own archive
        raise TargetUnavailableError(
            f"target directory '{target}' must not be inside source '{source}'",
            path=str(target),
            operation="resolve",
        )


class Archiver:
    """Creates dated zstd tarballs of a directory.

    Attributes:
        compression_level: zstd level
        long_distance: Whether zstd long-distance matching is enabled
        verbose: Log every archived entry at INFO instead of DEBUG
        walker: Callable producing FileEntry objects for a source root
        today: Callable returning the date used in the archive name

    Example:
        >>> archiver = Archiver(verbose=True)
        >>> result = archiver.run(ArchiveRequest("/data", "/backups"))
        >>> print(result.final_path)
    """

    def __init__(
        self,
        compression_level: int = DEFAULT_COMPRESSION_LEVEL,
        long_distance: bool = True,
        verbose: bool = False,
        walker: Callable[[Path], Iterable[FileEntry]] = walk_tree,
        today: Callable[[], date] = date.today,
    ) -> None:
        self.compression_level = compression_level
        self.long_distance = long_distance
        self.verbose = verbose
        self.walker = walker
        self.today = today

    def archive(self, request: ArchiveRequest) -> ArchiveResult:
        """Run the pipeline once.

        Args:
            request: Source and target for this run

        Returns:
            Successful ArchiveResult

        Raises:
            BackupError: Any pipeline failure; nothing is published
        """
        start_time = time.time()
        source = validate_source(request.source_path)
        check_target_outside_source(source, Path(request.target_dir))
        target = ensure_target(request.target_dir)

        with StagingFile(target) as staging:
            sink = ChecksumWriter(staging.file)
            writer = ArchiveWriter(
                sink,
                level=self.compression_level,
                long_distance=self.long_distance,
            )

            try:
                for entry in self._entries(source):
                    writer.add(entry)
                    self._log_entry(entry)
            except BaseException:
                writer.abort()
                raise

            writer.close()

            final_path = target / archive_filename(self.today(), sink.checksum)
            staging.commit(final_path)

        return ArchiveResult(
            success=True,
            final_path=str(final_path),
            checksum=sink.hexdigest(),
            size_bytes=sink.bytes_written,
            entry_count=writer.entry_count,
            duration_ms=int((time.time() - start_time) * 1000),
        )

    def run(self, request: ArchiveRequest) -> ArchiveResult:
        """Run the pipeline and report the outcome instead of raising.

        Emits exactly one terminal log line, success or failure.
        """
        start_time = time.time()
        try:
            result = self.archive(request)
        except BackupError as e:
            logger.error(
                f"Error creating archive: {e}",
                extra={"error_code": e.code, "source": request.source_path},
            )
            return ArchiveResult(
                success=False,
                duration_ms=int((time.time() - start_time) * 1000),
                error=str(e),
                error_code=e.code,
            )

        logger.info(
            f"Successfully created archive: {result.final_path}",
            extra={
                "checksum": result.checksum,
                "size_bytes": result.size_bytes,
                "entry_count": result.entry_count,
                "duration_ms": result.duration_ms,
            },
        )
        return result

    async def archive_async(self, request: ArchiveRequest) -> ArchiveResult:
        """Run the blocking pipeline in the default executor."""
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self.run, request)

    async def archive_many(
        self,
        requests: Iterable[ArchiveRequest],
        max_concurrent: int = 4,
    ) -> list[ArchiveResult]:
        """Archive several sources concurrently.

        Each run gets its own staging file, checksum and writer chain.

        Args:
            requests: Jobs to run
            max_concurrent: Maximum runs in flight

        Returns:
            Results in request order
        """
        semaphore = asyncio.Semaphore(max_concurrent)

        async def _bounded(request: ArchiveRequest) -> ArchiveResult:
            async with semaphore:
                return await self.archive_async(request)

        return list(await asyncio.gather(*(_bounded(r) for r in requests)))

    def _entries(self, source: Path) -> Iterator[FileEntry]:
        try:
            yield from self.walker(source)
        except OSError as e:
            raise WalkError(
                "error during directory walk", path=str(source), operation="walk"
            ) from e

    def _log_entry(self, entry: FileEntry) -> None:
        level = logging.INFO if self.verbose else logging.DEBUG
        logger.log(level, f"Added to archive: {entry.relative_path}", extra={"kind": entry.kind})


def create_dated_archive(
    source_path: str,
    target_dir: str,
    verbose: bool = False,
) -> bool:
    """Archive source_path into target_dir with default settings.

    Returns:
        True if an archive was published, False on any error
    """
    result = Archiver(verbose=verbose).run(ArchiveRequest(source_path, target_dir))
    return result.success
