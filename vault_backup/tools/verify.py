"""
Archive verification tool for Vault Backup.

Spot-checks published archives without extracting them:
1. Parse the date and checksum from the archive filename
2. Recompute CRC32 over the archive bytes on disk
3. Decompress the zstd stream and read every tar member to the end

Usage:
    vault-backup-verify ARCHIVE [ARCHIVE ...] [-v]

Invariants:
    - Verification is read-only; nothing is written or extracted
    - The checksum is compared against the compressed bytes, as written

How to change safely:
    - Keep in step with the naming rules in archive/writer.py
"""

from __future__ import annotations

import argparse
import logging
import sys
import tarfile
import zlib
from dataclasses import dataclass
from pathlib import Path

import zstandard

from ..archive.writer import parse_archive_filename

logger = logging.getLogger(__name__)

READ_CHUNK_SIZE = 1024 * 1024


@dataclass
class VerifyResult:
    """Result of verifying one archive.

    Attributes:
        path: Archive path
        success: Whether checksum and stream both verified
        checksum_ok: Whether the on-disk CRC32 matches the filename
        expected_checksum: Checksum embedded in the filename
        actual_checksum: CRC32 of the file bytes
        member_count: Number of tar members read
        error: Error message if failed
    """

    path: str
    success: bool
    checksum_ok: bool = False
    expected_checksum: str | None = None
    actual_checksum: str | None = None
    member_count: int = 0
    error: str | None = None


def file_checksum(path: str | Path) -> int:
    """CRC32 of a file's bytes."""
    crc = 0
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(READ_CHUNK_SIZE), b""):
            crc = zlib.crc32(chunk, crc)
    return crc & 0xFFFFFFFF


def read_members(path: str | Path) -> list[tarfile.TarInfo]:
    """Stream-read every member of a .tar.zstd archive.

    Regular file content is read to the end so truncation is detected.

    Raises:
        tarfile.TarError: If the tar stream is malformed
        zstandard.ZstdError: If the zstd frame is corrupt
    """
    members = []
    with open(path, "rb") as f:
        reader = zstandard.ZstdDecompressor().stream_reader(f)
        with tarfile.open(fileobj=reader, mode="r|") as tar:
            for member in tar:
                if member.isfile():
                    content = tar.extractfile(member)
                    while content.read(READ_CHUNK_SIZE):
                        pass
                members.append(member)
    return members


def verify_archive(path: str | Path) -> VerifyResult:
    """Verify one archive's checksum and stream integrity."""
    path = Path(path)
    logger.debug(f"Verifying archive {path}")
    parsed = parse_archive_filename(path.name)
    if parsed is None:
        return VerifyResult(
            path=str(path), success=False, error=f"not an archive filename: {path.name}"
        )

    _, expected = parsed
    result = VerifyResult(path=str(path), success=False, expected_checksum=f"{expected:08x}")

    try:
        actual = file_checksum(path)
    except OSError as e:
        result.error = f"could not read archive: {e}"
        return result

    result.actual_checksum = f"{actual:08x}"
    result.checksum_ok = actual == expected
    if not result.checksum_ok:
        result.error = (
            f"checksum mismatch: expected {result.expected_checksum}, "
            f"got {result.actual_checksum}"
        )
        return result

    try:
        result.member_count = len(read_members(path))
    except (OSError, tarfile.TarError, zstandard.ZstdError) as e:
        result.error = f"archive stream is corrupt: {e}"
        return result

    result.success = True
    return result


def main(argv: list[str] | None = None) -> None:
    """CLI entry point for archive verification."""
    parser = argparse.ArgumentParser(
        prog="vault-backup-verify",
        description="Verify checksums and readability of Vault Backup archives",
    )
    parser.add_argument("archives", nargs="+", help="Archive files to verify")
    parser.add_argument("-v", "--verbose", action="store_true", help="Verbose output")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s - %(levelname)s - %(message)s",
    )

    failed = 0
    for archive in args.archives:
        result = verify_archive(archive)
        if result.success:
            print(f"OK      {result.path} ({result.member_count} members, crc32 {result.actual_checksum})")
        else:
            failed += 1
            print(f"FAILED  {result.path}: {result.error}")

    sys.exit(1 if failed else 0)


if __name__ == "__main__":
    main()
