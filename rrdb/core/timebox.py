from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Tuple, Union


EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
ONE_SECOND = timedelta(seconds=1)

Timestamp = Union[datetime, int, float]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def to_utc(t: Timestamp) -> datetime:
    """Normalize a timestamp to an aware UTC datetime.

    Naive datetimes are taken to already be in UTC; numbers are epoch seconds.
    """
    if isinstance(t, datetime):
        if t.tzinfo is None:
            return t.replace(tzinfo=timezone.utc)
        return t.astimezone(timezone.utc)
    return datetime.fromtimestamp(float(t), tz=timezone.utc)


def epoch_seconds(t: datetime) -> int:
    """Whole seconds since the epoch, floored (pre-epoch times round down)."""
    return (to_utc(t) - EPOCH) // ONE_SECOND


def box_time(t: Timestamp, resolution: int) -> Tuple[datetime, datetime]:
    """Return the ``[start, stop)`` timebox of width ``resolution`` holding ``t``.

    If all of time were cut into equal chunks of ``resolution`` seconds
    starting at the epoch, ``start`` is the beginning of the chunk ``t`` falls
    in. Boundaries come from integer epoch arithmetic so that re-deriving them
    any number of times never drifts.
    """
    unix = epoch_seconds(to_utc(t))
    start = unix - unix % resolution
    return (
        EPOCH + timedelta(seconds=start),
        EPOCH + timedelta(seconds=start + resolution),
    )
