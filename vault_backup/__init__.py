"""
Vault Backup - dated, checksummed zstd tarballs of a directory.

This package archives one source directory per run into a target
directory, for execution by an external scheduler:

    source dir ──▶ walker ──▶ tar ──▶ zstd ──┬──▶ staging file ──rename──▶ archive
                                             └──▶ CRC32 ───────────────────┘ (name)

Archive naming:
    <mm-dd-yyyy>-<crc32>.tar.zstd

Invariants:
    - One complete archive per successful run, nothing on failure
    - Unchanged input on the same day yields the same archive name
    - No state is kept between runs (no manifest, lock or index)

How to change safely:
    - Anything that alters archive bytes alters archive names
    - Restore, retention and encryption are deliberately not part of this package

Version: see _version.py.
"""

from ._version import __version__

__all__ = ["__version__"]
