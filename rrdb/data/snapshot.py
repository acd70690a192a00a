from __future__ import annotations

import logging
import struct
from datetime import datetime, timedelta
from typing import List, Optional, Tuple

from ..core.errors import (
    SnapshotEmptyError,
    SnapshotFormatError,
    SnapshotInvariantError,
    SnapshotVersionError,
)
from ..core.state import EMPTY_INDEX, StoreState
from ..core.store import MAX_RESOLUTION, RingStore
from ..core.timebox import EPOCH


logger = logging.getLogger(__name__)

SNAPSHOT_VERSION = 1

# Network byte order throughout. Timestamps are microseconds since the epoch.
_VERSION = struct.Struct("!B")
_HEADER = struct.Struct("!II")  # resolution, sample count
_TRAILER = struct.Struct("!iiqqq")  # head, tail, current_start, current_stop, last_entry
_NO_TIME = -(2**63)
_ONE_MICROSECOND = timedelta(microseconds=1)


def _pack_time(t: Optional[datetime]) -> int:
    if t is None:
        return _NO_TIME
    return (t - EPOCH) // _ONE_MICROSECOND


def _unpack_time(us: int) -> Optional[datetime]:
    if us == _NO_TIME:
        return None
    return EPOCH + timedelta(microseconds=us)


def encode_state(state: StoreState) -> bytes:
    if not 0 <= state.resolution <= MAX_RESOLUTION:
        raise ValueError(f"resolution {state.resolution} does not fit a snapshot (max {MAX_RESOLUTION})")
    count = len(state.samples)
    parts = [
        _VERSION.pack(SNAPSHOT_VERSION),
        _HEADER.pack(state.resolution, count),
        struct.pack(f"!{count}d", *state.samples),
        _TRAILER.pack(
            state.head,
            state.tail,
            _pack_time(state.current_start),
            _pack_time(state.current_stop),
            _pack_time(state.last_entry),
        ),
    ]
    return b"".join(parts)


def decode_state(data: bytes) -> StoreState:
    """Parse snapshot bytes into a ``StoreState`` without checking the ring."""
    if not data:
        raise SnapshotEmptyError("rrdb.decode_snapshot: no data")

    (version,) = _VERSION.unpack_from(data, 0)
    if version != SNAPSHOT_VERSION:
        raise SnapshotVersionError(f"rrdb.decode_snapshot: unknown version {version}")

    pos = _VERSION.size
    try:
        resolution, count = _HEADER.unpack_from(data, pos)
        pos += _HEADER.size
        samples = struct.unpack_from(f"!{count}d", data, pos)
        pos += 8 * count
        head, tail, start_us, stop_us, last_us = _TRAILER.unpack_from(data, pos)
        pos += _TRAILER.size
    except struct.error as exc:
        raise SnapshotFormatError(f"rrdb.decode_snapshot: truncated snapshot ({exc})") from exc

    if pos != len(data):
        raise SnapshotFormatError(
            f"rrdb.decode_snapshot: {len(data) - pos} trailing bytes after snapshot"
        )

    try:
        current_start = _unpack_time(start_us)
        current_stop = _unpack_time(stop_us)
        last_entry = _unpack_time(last_us)
    except (OverflowError, ValueError) as exc:
        raise SnapshotFormatError(f"rrdb.decode_snapshot: timestamp out of range ({exc})") from exc

    return StoreState(
        resolution=resolution,
        samples=tuple(samples),
        head=head,
        tail=tail,
        current_start=current_start,
        current_stop=current_stop,
        last_entry=last_entry,
    )


def check_state(state: StoreState) -> List[str]:
    """List every way ``state`` fails to describe a valid ring."""
    problems: List[str] = []
    if state.resolution < 1:
        problems.append(f"resolution {state.resolution} < 1")
    if state.capacity < 1:
        problems.append("no sample slots")

    times: Tuple[Optional[datetime], ...] = (
        state.current_start,
        state.current_stop,
        state.last_entry,
    )
    if state.head == EMPTY_INDEX or state.tail == EMPTY_INDEX:
        if state.head != state.tail:
            problems.append(f"head {state.head} and tail {state.tail} disagree on emptiness")
        if any(t is not None for t in times):
            problems.append("empty ring carries timestamps")
        return problems

    for name, idx in (("head", state.head), ("tail", state.tail)):
        if not 0 <= idx < state.capacity:
            problems.append(f"{name} {idx} outside [0, {state.capacity})")

    start, stop, last = times
    if start is None or stop is None or last is None:
        problems.append("non-empty ring is missing timestamps")
        return problems
    if (stop - start).total_seconds() != state.resolution:
        problems.append(f"box [{start}, {stop}) is not {state.resolution}s wide")
    if not start <= last < stop:
        problems.append(f"last entry {last} outside box [{start}, {stop})")
    return problems


def encode_snapshot(store: RingStore) -> bytes:
    data = encode_state(store.to_state())
    logger.debug("Encoded snapshot", extra={"bytes": len(data), "length": store.length()})
    return data


def decode_snapshot(data: bytes, validate: bool = True) -> RingStore:
    """Rebuild a store from ``encode_snapshot`` output.

    With ``validate`` off the fields are copied verbatim, so a corrupted ring
    only shows up later as odd reads.
    """
    state = decode_state(data)
    if validate:
        problems = check_state(state)
        if problems:
            raise SnapshotInvariantError("rrdb.decode_snapshot: " + "; ".join(problems))
    logger.debug("Decoded snapshot", extra={"bytes": len(data), "capacity": state.capacity})
    return RingStore.from_state(state)


def restore_snapshot(store: RingStore, data: bytes, validate: bool = True) -> RingStore:
    """Replace ``store``'s state with the snapshot; untouched if decoding fails."""
    decoded = decode_snapshot(data, validate=validate)
    store.replace_state(decoded.to_state())
    return store
