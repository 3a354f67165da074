"""
Directory tree walker for Vault Backup.

Produces a lazy, depth-first sequence of FileEntry objects for every
descendant of a source directory. The source root itself is never emitted.

Ordering:
    Pre-order: a directory is yielded before its children, and children
    are visited in sorted name order. A static tree therefore always
    yields the same sequence, which keeps the archive bytes (and the
    checksum in the filename) stable across runs.

Invariants:
    - relative_path always uses forward slashes
    - Symlinks are recorded, never followed
    - Any metadata error aborts the walk with WalkError

How to change safely:
    - Changing the visit order changes every archive checksum
    - Keep the walk lazy; trees can be arbitrarily large
"""

from __future__ import annotations

import os
import stat
from collections.abc import Iterator
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO

from ..errors import WalkError


@dataclass(frozen=True)
class FileEntry:
    """One filesystem node found under the source root.

    Attributes:
        path: Host path of the entry
        relative_path: Forward-slash path relative to the source root
        mode: Raw st_mode (type and permission bits)
        size: Size in bytes (meaningful for regular files only)
        mtime: Modification time, whole seconds since the epoch
        uid: Owner user id
        gid: Owner group id
        rdev: Device number for character/block devices
        link_target: Symlink target, None unless the entry is a symlink
    """

    path: Path
    relative_path: str
    mode: int
    size: int
    mtime: int
    uid: int = 0
    gid: int = 0
    rdev: int = 0
    link_target: str | None = None

    @property
    def is_dir(self) -> bool:
        return stat.S_ISDIR(self.mode)

    @property
    def is_file(self) -> bool:
        return stat.S_ISREG(self.mode)

    @property
    def is_symlink(self) -> bool:
        return stat.S_ISLNK(self.mode)

    @property
    def permissions(self) -> int:
        return stat.S_IMODE(self.mode)

    @property
    def kind(self) -> str:
        """Short entry type label for log lines."""
        if self.is_dir:
            return "dir"
        if self.is_file:
            return "file"
        if self.is_symlink:
            return "symlink"
        return "special"

    def open(self) -> BinaryIO:
        """Open a regular file's content for streaming."""
        return open(self.path, "rb")

    @classmethod
    def from_path(cls, path: Path, root: Path) -> FileEntry:
        """Build an entry from an lstat of path.

        Raises:
            WalkError: If the entry's metadata cannot be read.
        """
        try:
            st = os.lstat(path)
            link_target = os.readlink(path) if stat.S_ISLNK(st.st_mode) else None
        except OSError as e:
            raise WalkError(
                f"could not read metadata for '{path}'",
                path=str(path),
                operation="lstat",
            ) from e

        return cls(
            path=path,
            relative_path=path.relative_to(root).as_posix(),
            mode=st.st_mode,
            size=st.st_size if stat.S_ISREG(st.st_mode) else 0,
            mtime=int(st.st_mtime),
            uid=st.st_uid,
            gid=st.st_gid,
            rdev=st.st_rdev,
            link_target=link_target,
        )


def _list_children(directory: Path) -> list[str]:
    try:
        return sorted(os.listdir(directory))
    except OSError as e:
        raise WalkError(
            f"could not list directory '{directory}'",
            path=str(directory),
            operation="listdir",
        ) from e


def walk_tree(root: str | os.PathLike[str]) -> Iterator[FileEntry]:
    """Walk every descendant of root, depth-first.

    Args:
        root: Source directory

    Yields:
        FileEntry for each descendant, directories before their contents

    Raises:
        WalkError: On the first entry whose metadata cannot be read
    """
    root_path = Path(root)
    # Each frame: a directory and its remaining sorted child names
    stack: list[tuple[Path, Iterator[str]]] = [
        (root_path, iter(_list_children(root_path)))
    ]

    while stack:
        directory, names = stack[-1]
        name = next(names, None)
        if name is None:
            stack.pop()
            continue

        entry = FileEntry.from_path(directory / name, root_path)
        yield entry

        if entry.is_dir:
            stack.append((entry.path, iter(_list_children(entry.path))))
