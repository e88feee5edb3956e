"""
MemoryStore — the persistent key-value document, injected everywhere.

Lifecycle
---------
The host loads the document once at tick start and flushes it once at tick
end. Between those two calls every component reads and writes through this
object; outside of them any access raises MemoryNotLoadedError, so nothing
can cache a stale view across the tick boundary.

    store = MemoryStore()
    store.load(document)            # tick start
    ...                             # colony runs
    document = store.flush()        # tick end

Namespaces
----------
  global   username, wipe-out flags, colony plan, trend samples, tick stats
  rooms    one section per room name   (see RoomMemory)
  creeps   one section per unit name   (see UnitMemory)

There is no schema versioning. Readers must treat missing or malformed
fields as defaults; MemoryField does that for the typed views.
"""

from __future__ import annotations

import copy
import json
from pathlib import Path
from typing import Any, Callable, Dict, Iterator, Optional, Union

from ColonyBot.errors import MemoryNotLoadedError


GLOBAL = "global"
ROOMS = "rooms"
CREEPS = "creeps"
NAMESPACES = (GLOBAL, ROOMS, CREEPS)


class MemoryStore:

    def __init__(self) -> None:
        self._document: Optional[Dict[str, dict]] = None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def load(self, document: Optional[dict] = None) -> None:
        """Start a tick from a persisted document (None = fresh colony)."""
        loaded = copy.deepcopy(document) if isinstance(document, dict) else {}
        for namespace in NAMESPACES:
            if not isinstance(loaded.get(namespace), dict):
                loaded[namespace] = {}
        self._document = loaded

    def flush(self) -> dict:
        """End the tick and hand back the document to persist."""
        document = self._require()
        self._document = None
        return document

    @property
    def is_loaded(self) -> bool:
        return self._document is not None

    def load_file(self, path: Union[str, Path]) -> None:
        path = Path(path)
        if not path.exists():
            self.load(None)
            return
        with open(path, encoding="utf-8") as fh:
            self.load(json.load(fh))

    def save_file(self, path: Union[str, Path]) -> dict:
        document = self.flush()
        with open(path, "w", encoding="utf-8") as fh:
            json.dump(document, fh, indent=2, sort_keys=True)
        return document

    # ------------------------------------------------------------------
    # Access
    # ------------------------------------------------------------------

    def get(self, namespace: str, key: str, default: Any = None) -> Any:
        return self._namespace(namespace).get(key, default)

    def set(self, namespace: str, key: str, value: Any) -> None:
        self._namespace(namespace)[key] = value

    def delete(self, namespace: str, key: str) -> None:
        self._namespace(namespace).pop(key, None)

    def keys(self, namespace: str) -> Iterator[str]:
        return iter(list(self._namespace(namespace).keys()))

    def section(self, namespace: str, key: str) -> dict:
        """Mutable dict for one room or unit, created on first use."""
        ns = self._namespace(namespace)
        value = ns.get(key)
        if not isinstance(value, dict):
            value = {}
            ns[key] = value
        return value

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _require(self) -> Dict[str, dict]:
        if self._document is None:
            raise MemoryNotLoadedError("memory store used outside of a tick")
        return self._document

    def _namespace(self, namespace: str) -> dict:
        document = self._require()
        if namespace not in NAMESPACES:
            raise KeyError(f"unknown memory namespace: {namespace}")
        return document[namespace]


# ---------------------------------------------------------------------------
# Typed field access for memory views
# ---------------------------------------------------------------------------

class MemoryField:
    """
    Descriptor mapping an attribute onto one key of a view's ``data`` dict.

    Reads are defensive: a missing key or a value the cast rejects yields the
    default. Assigning None removes the key.
    """

    def __init__(
        self,
        key: str,
        default: Any = None,
        cast: Optional[Callable[[Any], Any]] = None,
    ) -> None:
        self.key = key
        self.default = default
        self.cast = cast

    def _default(self) -> Any:
        return self.default() if callable(self.default) else self.default

    def __get__(self, obj, owner=None):
        if obj is None:
            return self
        value = obj.data.get(self.key)
        if value is None:
            return self._default()
        if self.cast is None:
            return value
        try:
            return self.cast(value)
        except (TypeError, ValueError):
            return self._default()

    def __set__(self, obj, value) -> None:
        if value is None:
            obj.data.pop(self.key, None)
        else:
            obj.data[self.key] = value
