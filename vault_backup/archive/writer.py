"""
Tar + zstd writer chain for Vault Backup.

The chain is built bottom-up:

    FileEntry -> tarfile ("w|", PAX) -> zstd stream writer -> ChecksumWriter
                                                               |-> staging file
                                                               '-> CRC32

Archive naming:
    <mm-dd-yyyy>-<crc32 as 8 hex digits>.tar.zstd

The CRC32 covers exactly the compressed bytes that land on disk, so it can
be re-checked later by hashing the archive file itself.

Invariants:
    - Entries are streamed; file content is read once and never buffered whole
    - close() shuts the tar layer before the zstd layer
    - abort() drops the chain without writing to the sink
    - The checksum is only meaningful after close() returns

How to change safely:
    - Changing the tar format, header fields or zstd parameters changes every
      checksum; same-day archives of unchanged data will get new names
    - Keep archive_filename and parse_archive_filename in sync
"""

from __future__ import annotations

import os
import re
import stat
import tarfile
import zlib
from datetime import date
from typing import BinaryIO

import zstandard

from ..errors import PipelineCloseError, WalkError
from .walker import FileEntry

DEFAULT_COMPRESSION_LEVEL = 19
ARCHIVE_SUFFIX = ".tar.zstd"
DATE_FORMAT = "%m-%d-%Y"

_ARCHIVE_NAME_RE = re.compile(r"^(\d{2}-\d{2}-\d{4})-([0-9a-f]{8})\.tar\.zstd$")


def archive_filename(day: date, checksum: int) -> str:
    """Build the final archive filename for a date and CRC32 value."""
    return f"{day.strftime(DATE_FORMAT)}-{checksum:08x}{ARCHIVE_SUFFIX}"


def parse_archive_filename(name: str) -> tuple[date, int] | None:
    """Split an archive filename into its date and checksum.

    Returns:
        (date, checksum) or None if name is not an archive filename
    """
    match = _ARCHIVE_NAME_RE.match(name)
    if not match:
        return None
    try:
        day = date(*_split_date(match.group(1)))
    except ValueError:
        return None
    return day, int(match.group(2), 16)


def _split_date(text: str) -> tuple[int, int, int]:
    month, day, year = (int(part) for part in text.split("-"))
    return year, month, day


class ChecksumWriter:
    """Fan-out sink: every write goes to the file and the CRC32 accumulator.

    Attributes:
        sink: Underlying binary file object
        bytes_written: Total bytes passed through
    """

    def __init__(self, sink: BinaryIO) -> None:
        self.sink = sink
        self.bytes_written = 0
        self._crc = 0

    def write(self, data: bytes) -> int:
        self.sink.write(data)
        self._crc = zlib.crc32(data, self._crc)
        self.bytes_written += len(data)
        return len(data)

    def flush(self) -> None:
        self.sink.flush()

    @property
    def checksum(self) -> int:
        """CRC32 (IEEE) of all bytes written so far, as unsigned 32-bit."""
        return self._crc & 0xFFFFFFFF

    def hexdigest(self) -> str:
        return f"{self.checksum:08x}"


class ArchiveWriter:
    """Serializes FileEntry objects into a zstd-compressed tar stream.

    Example:
        >>> sink = ChecksumWriter(fh)
        >>> writer = ArchiveWriter(sink)
        >>> for entry in walk_tree(source):
        ...     writer.add(entry)
        >>> writer.close()
        >>> sink.hexdigest()
    """

    def __init__(
        self,
        sink: ChecksumWriter | BinaryIO,
        level: int = DEFAULT_COMPRESSION_LEVEL,
        long_distance: bool = True,
    ) -> None:
        """Build the writer chain over sink.

        Args:
            sink: Destination for compressed bytes
            level: zstd compression level (1-22)
            long_distance: Enable zstd long-distance matching
        """
        params = zstandard.ZstdCompressionParameters.from_level(
            level, enable_ldm=long_distance
        )
        self._sink = sink
        self._zstd = zstandard.ZstdCompressor(compression_params=params).stream_writer(
            sink, closefd=False
        )
        self._tar = tarfile.open(fileobj=self._zstd, mode="w|", format=tarfile.PAX_FORMAT)
        self._closed = False
        self.entry_count = 0

    def add(self, entry: FileEntry) -> None:
        """Write one entry's header and, for regular files, its content.

        Raises:
            WalkError: If the entry cannot be read or written into the stream
        """
        if self._closed:
            raise RuntimeError("archive writer is closed")

        info = self._tarinfo(entry)
        try:
            if entry.is_file:
                with entry.open() as content:
                    self._tar.addfile(info, content)
            else:
                self._tar.addfile(info)
        except (OSError, zstandard.ZstdError) as e:
            raise WalkError(
                f"could not add '{entry.relative_path}' to archive",
                path=str(entry.path),
                operation="archive",
            ) from e

        self.entry_count += 1

    def close(self) -> None:
        """Flush the tar layer, then the zstd layer, then the sink.

        Raises:
            PipelineCloseError: If any layer fails to flush
        """
        if self._closed:
            raise RuntimeError("archive writer is already closed")
        self._closed = True

        try:
            self._tar.close()
        except (OSError, zstandard.ZstdError) as e:
            raise PipelineCloseError("failed to close tar writer", operation="close_tar") from e

        try:
            # closefd=False: ends the zstd frame without closing the sink
            self._zstd.close()
        except (OSError, zstandard.ZstdError) as e:
            raise PipelineCloseError("failed to close zstd writer", operation="close_zstd") from e

        try:
            self._sink.flush()
        except OSError as e:
            raise PipelineCloseError("failed to flush archive sink", operation="flush") from e

    def abort(self) -> None:
        """Drop the chain without flushing anything further into the sink.

        Used when a run fails partway; the sink is about to be discarded.
        Safe to call on a closed writer.
        """
        if self._closed:
            return
        self._closed = True
        # tarfile's stream layer writes its buffer out when garbage collected
        self._tar.fileobj.closed = True
        self._tar.closed = True

    @property
    def closed(self) -> bool:
        return self._closed

    def _tarinfo(self, entry: FileEntry) -> tarfile.TarInfo:
        info = tarfile.TarInfo(entry.relative_path)
        info.mode = entry.permissions
        info.uid = entry.uid
        info.gid = entry.gid
        info.mtime = entry.mtime

        mode = entry.mode
        if stat.S_ISREG(mode):
            info.type = tarfile.REGTYPE
            info.size = entry.size
        elif stat.S_ISDIR(mode):
            info.type = tarfile.DIRTYPE
        elif stat.S_ISLNK(mode):
            info.type = tarfile.SYMTYPE
            info.linkname = entry.link_target or ""
        elif stat.S_ISFIFO(mode):
            info.type = tarfile.FIFOTYPE
        elif stat.S_ISCHR(mode) or stat.S_ISBLK(mode):
            info.type = tarfile.CHRTYPE if stat.S_ISCHR(mode) else tarfile.BLKTYPE
            info.devmajor = os.major(entry.rdev)
            info.devminor = os.minor(entry.rdev)
        else:
            raise WalkError(
                f"unsupported file type for '{entry.relative_path}'",
                path=str(entry.path),
                operation="tar_header",
            )
        return info

