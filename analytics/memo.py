"""
Explicit memo store for derived payloads.

Entries are keyed by the identity of the input row collection plus a
fingerprint of the active configuration. The caller owns the store and decides
when to clear it; nothing here is module-level state.
"""

from __future__ import annotations

import hashlib
import json
import logging
from dataclasses import asdict, dataclass, is_dataclass
from enum import Enum
from typing import Any, Callable, Dict, Optional, Tuple

logger = logging.getLogger(__name__)


def _jsonable(obj: Any) -> Any:
    if is_dataclass(obj) and not isinstance(obj, type):
        return _jsonable(asdict(obj))
    if isinstance(obj, Enum):
        return obj.value
    if isinstance(obj, dict):
        return {str(_jsonable(k)): _jsonable(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple, set, frozenset)):
        items = [_jsonable(v) for v in obj]
        return sorted(items, key=str) if isinstance(obj, (set, frozenset)) else items
    return obj


def config_fingerprint(*parts: Any) -> str:
    """Stable short hash of configuration objects (dataclasses, dicts, scalars)."""
    payload = json.dumps([_jsonable(p) for p in parts], sort_keys=True, default=str)
    return hashlib.md5(payload.encode()).hexdigest()[:12]


@dataclass(frozen=True)
class MemoKey:
    name: str
    rows_id: int
    fingerprint: str


class MemoStore:
    """Caches results per (name, row-set identity, configuration fingerprint)."""

    def __init__(self) -> None:
        self._entries: Dict[MemoKey, Tuple[Any, Any]] = {}
        self.hits = 0
        self.misses = 0

    def make_key(self, name: str, rows: Any, *config: Any) -> MemoKey:
        return MemoKey(name=name, rows_id=id(rows), fingerprint=config_fingerprint(*config))

    def get(self, key: MemoKey, rows: Any) -> Optional[Any]:
        entry = self._entries.get(key)
        # the id of a collected list can be reused, so confirm the same object
        if entry is None or entry[0] is not rows:
            return None
        return entry[1]

    def get_or_compute(self, name: str, rows: Any, config: Tuple[Any, ...], compute: Callable[[], Any]) -> Any:
        key = self.make_key(name, rows, *config)
        cached = self.get(key, rows)
        if cached is not None:
            self.hits += 1
            logger.debug("Memo hit: %s", key)
            return cached
        self.misses += 1
        value = compute()
        self._entries[key] = (rows, value)
        logger.debug("Memo set: %s", key)
        return value

    def invalidate(self, rows: Any = None) -> None:
        """Drop entries for one row collection, or everything when `rows` is None."""
        if rows is None:
            self._entries.clear()
            return
        for key in [k for k, (ref, _) in self._entries.items() if ref is rows]:
            del self._entries[key]

    def __len__(self) -> int:
        return len(self._entries)
