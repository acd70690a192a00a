from __future__ import annotations


class RRDBError(Exception):
    """Base class for all store errors."""


class NonMonotonicWriteError(RRDBError, ValueError):
    """A sample was older than the last accepted one."""


class IndexOutOfRangeError(RRDBError, IndexError):
    pass


class SnapshotDecodeError(RRDBError, ValueError):
    """A snapshot could not be turned back into a store."""


class SnapshotEmptyError(SnapshotDecodeError):
    pass


class SnapshotVersionError(SnapshotDecodeError):
    pass


class SnapshotFormatError(SnapshotDecodeError):
    """Truncated or oversized payload."""


class SnapshotInvariantError(SnapshotDecodeError):
    """Decoded fields describe an impossible ring."""
