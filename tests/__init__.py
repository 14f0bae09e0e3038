"""
objsync Test Suite.

This package contains:
- unit/: Unit tests (no network, temporary directories for SQLite and files)
- integration/: Integration tests (full client against an in-memory server)
"""
