"""
Staging file for atomic archive placement.

A StagingFile is a uniquely named temporary file created inside the target
directory. The archive is written there and, once complete, renamed onto its
final name. Creating it beside the final path keeps the rename on a single
filesystem.

Invariants:
    - Exactly one temp file per run, owned by that run
    - The temp file is removed on every exit path unless committed
    - The final name never refers to a partially written file

Example:
    >>> with StagingFile(target_dir) as staging:
    ...     staging.file.write(data)
    ...     staging.commit(target_dir / "final.tar.zstd")
"""

from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path
from types import TracebackType
from typing import BinaryIO

from ..errors import PlacementError, TempFileError

logger = logging.getLogger(__name__)

TEMP_PREFIX = "backup-"
TEMP_SUFFIX = ".tmp"


class StagingFile:
    """Temp file that is either committed by rename or deleted.

    Attributes:
        target_dir: Directory holding the temp file
        path: Temp file path (set on enter)
        file: Open binary handle (set on enter)
        committed: Whether commit() succeeded
    """

    def __init__(
        self,
        target_dir: str | os.PathLike[str],
        prefix: str = TEMP_PREFIX,
        suffix: str = TEMP_SUFFIX,
    ) -> None:
        self.target_dir = Path(target_dir)
        self.prefix = prefix
        self.suffix = suffix
        self.path: Path | None = None
        self.file: BinaryIO | None = None
        self.committed = False

    def __enter__(self) -> StagingFile:
        try:
            fd, name = tempfile.mkstemp(
                prefix=self.prefix, suffix=self.suffix, dir=self.target_dir
            )
        except OSError as e:
            raise TempFileError(
                "failed to create temporary file",
                path=str(self.target_dir),
                operation="mkstemp",
            ) from e

        self.path = Path(name)
        self.file = os.fdopen(fd, "wb")
        logger.debug(f"Created staging file {self.path}")
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self._close_file()
        if not self.committed:
            self.discard()

    def commit(self, final_path: str | os.PathLike[str]) -> Path:
        """Persist the temp file and rename it onto final_path.

        Args:
            final_path: Permanent archive path

        Returns:
            The final path

        Raises:
            PlacementError: If syncing or renaming fails
        """
        if self.path is None or self.file is None:
            raise RuntimeError("staging file is not open")

        final = Path(final_path)
        try:
            self.file.flush()
            os.fsync(self.file.fileno())
            self._close_file()
            os.replace(self.path, final)
        except OSError as e:
            raise PlacementError(
                "failed to rename temporary file to final path",
                path=str(final),
                operation="rename",
            ) from e

        self.committed = True
        return final

    def discard(self) -> None:
        """Remove the temp file if it still exists."""
        if self.path is None:
            return
        try:
            self.path.unlink()
            logger.debug(f"Removed staging file {self.path}")
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning(f"Failed to remove staging file {self.path}: {e}")

    def _close_file(self) -> None:
        if self.file is not None and not self.file.closed:
            self.file.close()
