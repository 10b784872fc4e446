# warpstore/storage/errors.py
"""
Errors raised by DataConnection implementations.

Every error wraps the driver exception that caused it as ``__cause__``. The
text of that cause is meant for logs; callers show end users a generic
"storage unavailable" message instead.
"""


class StorageError(Exception):
    """Generic failure of a storage operation."""
    pass


class ConnectionFailure(StorageError):
    """The database driver or server could not be reached."""
    pass


class SchemaMissing(StorageError):
    """The warp table does not exist and creating it was not permitted."""
    pass


class SchemaOutdated(StorageError):
    """The warp table is behind the expected version and upgrading was not permitted."""
    pass


class MigrationError(StorageError):
    """A versioned migration failed to apply."""
    pass


class DecodeError(StorageError):
    """A single row could not be turned into a Warp."""
    pass


class DuplicateWarp(StorageError):
    """A warp with the same identity or name is already stored."""
    pass
