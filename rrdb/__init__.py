"""Round-robin time-series store.

A single metric is sampled at arbitrary times and consolidated into fixed
width timeboxes. The ring holds a fixed number of boxes and overwrites the
oldest one once full, so the footprint never grows.
"""

from .core.errors import (
    IndexOutOfRangeError,
    NonMonotonicWriteError,
    RRDBError,
    SnapshotDecodeError,
    SnapshotEmptyError,
    SnapshotFormatError,
    SnapshotInvariantError,
    SnapshotVersionError,
)
from .core.store import Bucket, InsertOutcome, RingStore
from .core.timebox import box_time
from .data.snapshot import SNAPSHOT_VERSION, decode_snapshot, encode_snapshot, restore_snapshot

__version__ = "0.1.0"

__all__ = [
    "Bucket",
    "IndexOutOfRangeError",
    "InsertOutcome",
    "NonMonotonicWriteError",
    "RRDBError",
    "RingStore",
    "SNAPSHOT_VERSION",
    "SnapshotDecodeError",
    "SnapshotEmptyError",
    "SnapshotFormatError",
    "SnapshotInvariantError",
    "SnapshotVersionError",
    "box_time",
    "decode_snapshot",
    "encode_snapshot",
    "restore_snapshot",
]
