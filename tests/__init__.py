"""
Vault Backup Test Suite.

This package contains:
- unit/: Unit tests for walker, writer chain, staging, config and errors
- integration/: Full pipeline runs against temporary directory trees
"""
