from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Dict, Iterator, List, Optional, Tuple, cast

from .errors import IndexOutOfRangeError, NonMonotonicWriteError, RRDBError
from .state import EMPTY_INDEX, StoreState
from .timebox import ONE_SECOND, Timestamp, box_time, to_utc, utc_now


logger = logging.getLogger(__name__)

# Snapshots store the resolution as an unsigned 32-bit field.
MAX_RESOLUTION = 2**32 - 1


class InsertOutcome(str, Enum):
    STARTED = "started"
    CONSOLIDATED = "consolidated"
    ADVANCED = "advanced"
    GAP_FILLED = "gap_filled"
    REJECTED_NON_MONOTONIC = "rejected_non_monotonic"

    @property
    def accepted(self) -> bool:
        return self is not InsertOutcome.REJECTED_NON_MONOTONIC


@dataclass
class Bucket:
    start: datetime
    stop: datetime
    value: float


def _weighted(old: float, prior_s: float, new: float, new_s: float) -> float:
    total = prior_s + new_s
    if total <= 0:
        # Nothing has been in effect yet; the latest value wins.
        return new
    return (old * prior_s + new * new_s) / total


class RingStore:
    """Fixed-capacity round-robin store of time-consolidated samples.

    Samples are folded into timeboxes of ``resolution`` seconds. Several
    samples within one box are combined into a time-weighted mean, skipped
    boxes are filled with zeros, and once ``capacity`` boxes exist every new
    box overwrites the oldest one.

    Not synchronized: use one writer per instance.
    """

    def __init__(self, resolution: int, capacity: int) -> None:
        if not 1 <= resolution <= MAX_RESOLUTION:
            raise ValueError(f"resolution must be between 1 and {MAX_RESOLUTION} seconds, got {resolution}")
        if capacity < 1:
            raise ValueError(f"capacity must be >= 1, got {capacity}")
        self._resolution: int = int(resolution)
        self._samples: List[float] = [0.0] * int(capacity)
        self._head: Optional[int] = None
        self._tail: Optional[int] = None
        self._current_start: Optional[datetime] = None
        self._current_stop: Optional[datetime] = None
        self._last_entry: Optional[datetime] = None

    # ───────────────────────────── props ─────────────────────────────

    @property
    def resolution(self) -> int:
        return self._resolution

    @property
    def capacity(self) -> int:
        return len(self._samples)

    @property
    def last_entry(self) -> Optional[datetime]:
        return self._last_entry

    def current_box(self) -> Optional[Tuple[datetime, datetime]]:
        if self._current_start is None or self._current_stop is None:
            return None
        return self._current_start, self._current_stop

    def is_empty(self) -> bool:
        return self._tail is None

    # ───────────────────────────── writes ─────────────────────────────

    def insert(self, value: float, strict: bool = False) -> InsertOutcome:
        return self.insert_at(value, utc_now(), strict=strict)

    def insert_at(self, value: float, timestamp: Timestamp, strict: bool = False) -> InsertOutcome:
        """Fold ``value`` observed at ``timestamp`` into the ring.

        A timestamp older than the last accepted sample leaves the store
        untouched and returns ``REJECTED_NON_MONOTONIC`` (or raises
        ``NonMonotonicWriteError`` when ``strict`` is set).
        """
        t = to_utc(timestamp)
        v = float(value)

        if self._tail is None:
            self._head = 0
            self._tail = 0
            self._samples[0] = v
            self._current_start, self._current_stop = box_time(t, self._resolution)
            self._last_entry = t
            return InsertOutcome.STARTED

        start, stop, last = self._current_box_or_raise()

        if t < last:
            if strict:
                raise NonMonotonicWriteError(
                    f"timestamp {t.isoformat()} is before last entry {last.isoformat()}"
                )
            logger.warning(
                "Rejected non-monotonic sample",
                extra={"timestamp": t.isoformat(), "last_entry": last.isoformat()},
            )
            return InsertOutcome.REJECTED_NON_MONOTONIC

        tail = self._tail
        prior_s = (last - start).total_seconds()

        if t < stop:
            self._samples[tail] = _weighted(self._samples[tail], prior_s, v, (t - last).total_seconds())
            self._last_entry = t
            return InsertOutcome.CONSOLIDATED

        if t < stop + timedelta(seconds=self._resolution):
            # Close out the old box as if ``v`` held from the last sample to its end.
            self._samples[tail] = _weighted(self._samples[tail], prior_s, v, (stop - last).total_seconds())
            self._samples[self._advance(stop)] = v
            self._last_entry = t
            return InsertOutcome.ADVANCED

        skipped = 0
        while stop <= t:
            tail = self._advance(stop)
            self._samples[tail] = 0.0
            stop = cast(datetime, self._current_stop)
            skipped += 1
        self._samples[tail] = v
        self._last_entry = t
        logger.debug("Filled gap", extra={"boxes_advanced": skipped, "timestamp": t.isoformat()})
        return InsertOutcome.GAP_FILLED

    def _current_box_or_raise(self) -> Tuple[datetime, datetime, datetime]:
        start, stop, last = self._current_start, self._current_stop, self._last_entry
        if start is None or stop is None or last is None:
            raise RRDBError("ring holds data but has no current timebox")
        return start, stop, last

    def _advance(self, stop: datetime) -> int:
        """Rotate the ring one box past ``stop`` and return the new tail."""
        capacity = len(self._samples)
        tail = (cast(int, self._tail) + 1) % capacity
        if tail == self._head:
            self._head = (tail + 1) % capacity
        self._tail = tail
        # Re-align rather than add so boundaries never drift.
        self._current_start, self._current_stop = box_time(stop + ONE_SECOND, self._resolution)
        return tail

    # ───────────────────────────── reads ─────────────────────────────

    def length(self) -> int:
        if self._tail is None or self._head is None:
            return 0
        if self._tail >= self._head:
            return self._tail - self._head + 1
        return len(self._samples) - self._head + self._tail + 1

    def get(self, index: int) -> float:
        """Return the ``index``-th oldest bucket value."""
        size = self.length()
        if index < 0 or index >= size:
            raise IndexOutOfRangeError(f"index {index} out of range for length {size}")
        head = cast(int, self._head)
        return self._samples[(head + index) % len(self._samples)]

    def values(self) -> List[float]:
        return [self.get(i) for i in range(self.length())]

    def buckets(self) -> List[Bucket]:
        size = self.length()
        if size == 0:
            return []
        current_start, _, _ = self._current_box_or_raise()
        width = timedelta(seconds=self._resolution)
        out: List[Bucket] = []
        for i in range(size):
            start = current_start - width * (size - 1 - i)
            out.append(Bucket(start=start, stop=start + width, value=self.get(i)))
        return out

    def get_window(self, start: Timestamp, end: Optional[Timestamp] = None) -> List[Bucket]:
        lo = to_utc(start)
        hi = to_utc(end) if end is not None else utc_now()
        return [b for b in self.buckets() if lo <= b.start <= hi]

    def __len__(self) -> int:
        return self.length()

    def __getitem__(self, index: int) -> float:
        return self.get(index)

    def __iter__(self) -> Iterator[float]:
        return iter(self.values())

    def __repr__(self) -> str:
        return (
            f"RingStore(resolution={self._resolution}, capacity={self.capacity}, "
            f"length={self.length()})"
        )

    def describe(self) -> Dict[str, Any]:
        """Raw internal state, for debugging dumps."""

        def iso(t: Optional[datetime]) -> Optional[str]:
            return t.isoformat() if t is not None else None

        return {
            "res": self._resolution,
            "head": EMPTY_INDEX if self._head is None else self._head,
            "tail": EMPTY_INDEX if self._tail is None else self._tail,
            "cap": self.capacity,
            "len": self.length(),
            "start": iso(self._current_start),
            "stop": iso(self._current_stop),
            "last": iso(self._last_entry),
            "data": list(self._samples),
        }

    # ───────────────────────────── persistence ─────────────────────────────

    def to_state(self) -> StoreState:
        return StoreState(
            resolution=self._resolution,
            samples=tuple(self._samples),
            head=EMPTY_INDEX if self._head is None else self._head,
            tail=EMPTY_INDEX if self._tail is None else self._tail,
            current_start=self._current_start,
            current_stop=self._current_stop,
            last_entry=self._last_entry,
        )

    @classmethod
    def from_state(cls, state: StoreState) -> "RingStore":
        store = cls.__new__(cls)
        store.replace_state(state)
        return store

    def replace_state(self, state: StoreState) -> None:
        # Copied verbatim; checking the ring is the codec's job.
        self._resolution = state.resolution
        self._samples = list(state.samples)
        self._head = None if state.head == EMPTY_INDEX else state.head
        self._tail = None if state.tail == EMPTY_INDEX else state.tail
        self._current_start = state.current_start
        self._current_stop = state.current_stop
        self._last_entry = state.last_entry
