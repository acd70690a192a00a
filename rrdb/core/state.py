from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Tuple


EMPTY_INDEX = -1


@dataclass(frozen=True)
class StoreState:
    """Plain copy of every ring field, used only for persistence.

    ``head``/``tail`` use ``EMPTY_INDEX`` and the timestamps ``None`` while the
    ring holds no data.
    """

    resolution: int
    samples: Tuple[float, ...]
    head: int = EMPTY_INDEX
    tail: int = EMPTY_INDEX
    current_start: Optional[datetime] = None
    current_stop: Optional[datetime] = None
    last_entry: Optional[datetime] = None

    @property
    def capacity(self) -> int:
        return len(self.samples)

    @property
    def is_empty(self) -> bool:
        return self.head == EMPTY_INDEX and self.tail == EMPTY_INDEX
