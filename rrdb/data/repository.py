from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional, Union

import diskcache as dc

from ..core.store import RingStore
from .snapshot import decode_snapshot, encode_snapshot


logger = logging.getLogger(__name__)

_KEY_PREFIX = "rrdb:snapshot:"


class SnapshotRepository:
    """Named store snapshots kept on disk in a ``diskcache.Cache``.

    Values are the raw snapshot bytes, so anything written here can also be
    decoded with ``decode_snapshot`` directly.
    """

    def __init__(self, directory: Union[str, Path], size_limit: int = 2 * 1024**3) -> None:
        self.directory = Path(directory)
        self._cache = dc.Cache(str(self.directory), size_limit=size_limit)

    def save(self, name: str, store: RingStore) -> None:
        self._cache.set(_KEY_PREFIX + name, encode_snapshot(store))
        logger.info("Saved snapshot", extra={"snapshot": name, "length": store.length()})

    def load(self, name: str, validate: bool = True) -> Optional[RingStore]:
        data = self._cache.get(_KEY_PREFIX + name)
        if data is None:
            return None
        return decode_snapshot(data, validate=validate)

    def delete(self, name: str) -> bool:
        return bool(self._cache.delete(_KEY_PREFIX + name))

    def names(self) -> List[str]:
        return sorted(
            key[len(_KEY_PREFIX):]
            for key in self._cache.iterkeys()
            if isinstance(key, str) and key.startswith(_KEY_PREFIX)
        )

    def close(self) -> None:
        self._cache.close()

    def __enter__(self) -> "SnapshotRepository":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
