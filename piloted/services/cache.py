"""Per-backend cache of discovered instances."""
from __future__ import annotations

import logging
from threading import Lock
from typing import Dict, Iterable, List, Optional

from prometheus_client import Gauge

from piloted.core.errors import UnknownBackend
from piloted.models.schemas import BackendEntry
from piloted.services.round_robin import RoundRobinSlot

log = logging.getLogger("piloted.cache")

BACKEND_ENTRIES = Gauge("piloted_backend_entries", "Cached instances per backend", ["cache", "backend"])


class BackendCache:
    """In-memory backend name -> RoundRobinSlot mapping.

    Replacement swaps in a whole new slot, so a lookup either sees the old
    entries with their cursor or the new entries with a fresh one. The map lock
    only guards writes; reads go straight to the slot.

    ``label`` tells caches apart in the entries gauge; it defaults to a
    per-instance id.
    """

    def __init__(self, label: Optional[str] = None):
        self.label = label or f"{id(self):x}"
        self._slots: Dict[str, RoundRobinSlot] = {}
        self._lock = Lock()

    def replace_all(self, name: str, entries: Iterable[BackendEntry]) -> None:
        slot = RoundRobinSlot(entries)
        with self._lock:
            self._slots[name] = slot
        BACKEND_ENTRIES.labels(cache=self.label, backend=name).set(len(slot))
        log.debug("Cached %d instance(s) for %s", len(slot), name)

    def next(self, name: str) -> BackendEntry:
        slot = self._slots.get(name)
        entry = slot.pick() if slot is not None else None
        if entry is None:
            raise UnknownBackend(name)
        return entry

    def has(self, name: str) -> bool:
        slot = self._slots.get(name)
        return slot is not None and len(slot) > 0

    def entries(self, name: str) -> tuple[BackendEntry, ...]:
        slot = self._slots.get(name)
        return slot.entries if slot is not None else ()

    def names(self) -> List[str]:
        with self._lock:
            return list(self._slots)

    def clear(self) -> None:
        with self._lock:
            names = list(self._slots)
            self._slots.clear()
        for name in names:
            BACKEND_ENTRIES.remove(self.label, name)
