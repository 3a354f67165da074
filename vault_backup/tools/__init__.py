"""
CLI tools for Vault Backup administration.

This module provides command-line tools for:
- verify: Check archive checksums and stream integrity

Invariants:
    - Tools work offline against archive files only
    - Tools never modify archives
"""

from .verify import VerifyResult, verify_archive

__all__ = ["VerifyResult", "verify_archive"]
