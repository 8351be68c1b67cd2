"""Round-robin cursor over one backend's instances."""
from __future__ import annotations

import threading
from typing import Iterable, Optional

from piloted.models.schemas import BackendEntry


class RoundRobinSlot:
    """Thread-safe round-robin over a fixed, ordered list of entries.

    The cursor starts at 0 and advances before every read, so the first pick
    from ``[A, B, C]`` is ``B``.
    """

    def __init__(self, entries: Iterable[BackendEntry]):
        self._lock = threading.Lock()
        self._entries: tuple[BackendEntry, ...] = tuple(entries)
        self._index = 0

    @property
    def entries(self) -> tuple[BackendEntry, ...]:
        return self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def pick(self) -> Optional[BackendEntry]:
        """Advance the cursor and return the entry it lands on; None when empty."""
        if not self._entries:
            return None

        with self._lock:
            self._index = (self._index + 1) % len(self._entries)
            return self._entries[self._index]
