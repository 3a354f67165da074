"""
Shared fixtures for Vault Backup tests.
"""

import io
import tarfile
import tempfile
from pathlib import Path

import pytest
import zstandard


@pytest.fixture
def workdir():
    """Create temporary working directory."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def make_tree():
    """Build a directory tree from a {relative_path: content} mapping.

    A value of None creates a directory; str or bytes creates a file.
    """

    def _make(root: Path, files: dict) -> Path:
        root.mkdir(parents=True, exist_ok=True)
        for rel, content in files.items():
            path = root / rel
            if content is None:
                path.mkdir(parents=True, exist_ok=True)
                continue
            path.parent.mkdir(parents=True, exist_ok=True)
            data = content.encode("utf-8") if isinstance(content, str) else content
            path.write_bytes(data)
        return root

    return _make


@pytest.fixture
def read_archive():
    """Decompress a .tar.zstd file and return {member_name: content}.

    Directory and link members map to None.
    """

    def _read(source) -> dict:
        data = source if isinstance(source, bytes) else Path(source).read_bytes()
        raw = zstandard.ZstdDecompressor().decompressobj().decompress(data)
        members = {}
        with tarfile.open(fileobj=io.BytesIO(raw), mode="r:") as tar:
            for member in tar.getmembers():
                if member.isfile():
                    members[member.name] = tar.extractfile(member).read()
                else:
                    members[member.name] = None
        return members

    return _read
