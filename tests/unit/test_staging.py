"""
Unit tests for staging files and atomic placement.

Tests cover:
- Temp file creation in the target directory
- Cleanup on every exit path
- Commit by rename
- Creation and rename failures
"""

import pytest

from vault_backup.archive.staging import StagingFile
from vault_backup.errors import PlacementError, TempFileError


class TestStagingFile:
    """Tests for StagingFile."""

    def test_created_in_target_dir(self, workdir):
        """Temp file lives in the target directory with backup-*.tmp name."""
        with StagingFile(workdir) as staging:
            assert staging.path.parent == workdir
            assert staging.path.name.startswith("backup-")
            assert staging.path.name.endswith(".tmp")
            assert staging.path.exists()

    def test_removed_without_commit(self, workdir):
        """Leaving the block without commit deletes the temp file."""
        with StagingFile(workdir) as staging:
            staging.file.write(b"partial")
            path = staging.path

        assert not path.exists()
        assert list(workdir.iterdir()) == []

    def test_removed_on_exception(self, workdir):
        """An exception inside the block still deletes the temp file."""
        with pytest.raises(ValueError):
            with StagingFile(workdir) as staging:
                staging.file.write(b"partial")
                raise ValueError("boom")

        assert list(workdir.iterdir()) == []

    def test_commit_renames(self, workdir):
        """commit() publishes the content under the final name."""
        final = workdir / "final.tar.zstd"

        with StagingFile(workdir) as staging:
            staging.file.write(b"archive bytes")
            temp_path = staging.path
            result = staging.commit(final)

        assert result == final
        assert staging.committed
        assert final.read_bytes() == b"archive bytes"
        assert not temp_path.exists()
        assert list(workdir.iterdir()) == [final]

    def test_commit_overwrites_existing(self, workdir):
        """An existing file under the final name is replaced."""
        final = workdir / "final.tar.zstd"
        final.write_bytes(b"old")

        with StagingFile(workdir) as staging:
            staging.file.write(b"new")
            staging.commit(final)

        assert final.read_bytes() == b"new"

    def test_names_are_unique(self, workdir):
        """Concurrent staging files never share a name."""
        with StagingFile(workdir) as first, StagingFile(workdir) as second:
            assert first.path != second.path

    def test_missing_target_raises_temp_file_error(self, workdir):
        """A temp file cannot be created in a missing directory."""
        with pytest.raises(TempFileError) as exc_info:
            with StagingFile(workdir / "missing"):
                pass

        assert exc_info.value.code == "TEMP_FILE_FAILURE"

    def test_failed_rename_raises_placement_error(self, workdir):
        """Renaming onto a non-empty directory fails and cleans up."""
        blocker = workdir / "final.tar.zstd"
        blocker.mkdir()
        (blocker / "keep").write_bytes(b"")

        with pytest.raises(PlacementError) as exc_info:
            with StagingFile(workdir) as staging:
                staging.file.write(b"data")
                staging.commit(blocker)

        assert exc_info.value.path == str(blocker)
        assert sorted(p.name for p in workdir.iterdir()) == ["final.tar.zstd"]
        assert blocker.is_dir()

    def test_commit_requires_open_file(self, workdir):
        """commit() before entering is a programming error."""
        with pytest.raises(RuntimeError):
            StagingFile(workdir).commit(workdir / "x")
