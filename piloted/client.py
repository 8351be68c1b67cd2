"""The piloted instance: configuration lifecycle, refresh and lookup.

Wires the DiscoveryClient (catalog access), BackendCache (round-robin
selection) and ConfigLoader together, and keeps the last configuration so a
refresh can re-fetch it later.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Optional

import httpx

from piloted.core.config import Settings, settings as default_settings
from piloted.core.errors import FetchError
from piloted.models.schemas import BackendEntry, Configuration
from piloted.services.cache import BackendCache
from piloted.services.discovery_client import DiscoveryClient
from piloted.services.loader import ConfigLoader

log = logging.getLogger("piloted.client")

Callback = Callable[[Optional[BaseException]], Any]


class Piloted:
    """
    Service-discovery client owning one backend cache.

    ``configure`` loads a configuration, ``resolve`` returns the next instance
    of a backend, and ``trigger_refresh`` re-fetches the last configuration in
    the background. Instances are independent of each other.
    """

    def __init__(self, client: Optional[httpx.AsyncClient] = None, settings: Optional[Settings] = None):
        self._settings = settings or default_settings
        self.cache = BackendCache()
        self._loader = ConfigLoader(DiscoveryClient(client, self._settings), self.cache, self._settings)
        self._config: Optional[Configuration] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._tasks: set[asyncio.Task] = set()

    @property
    def config(self) -> Optional[Configuration]:
        """The resolved configuration of the last ``configure`` call, if any."""
        return self._config

    def configure(self, config: Any, callback: Optional[Callback] = None) -> asyncio.Task:
        """
        Load ``config`` and populate the cache.

        Validation happens right away and raises ConfigError before any request
        is made. The returned task resolves once every backend has been fetched
        and raises FetchError if any of them failed. ``callback``, when given,
        is called once with ``None`` or that error.

        Must be called with a running event loop.
        """
        prepared = self._loader.prepare(config)
        self._loop = asyncio.get_running_loop()
        self._config = prepared

        task = self._loop.create_task(self._loader.load(prepared))
        self._track(task)
        if callback is not None:
            task.add_done_callback(_completion(callback))
        return task

    def resolve(self, name: str) -> BackendEntry:
        """Return the next instance of ``name`` in round-robin order.

        Raises UnknownBackend when the backend has never been populated.
        """
        return self.cache.next(name)

    def has(self, name: str) -> bool:
        return self.cache.has(name)

    async def refresh(self) -> None:
        """Re-fetch every backend of the last configuration.

        Does nothing when nothing was ever configured. Fetch failures are
        logged; backends that did load are still updated.
        """
        config = self._config
        if config is None:
            return
        try:
            await self._loader.load(config)
        except FetchError as e:
            log.warning("Refresh failed: %s", e)
        except Exception:
            # nobody awaits a triggered refresh
            log.exception("Refresh failed unexpectedly")

    def trigger_refresh(self) -> None:
        """Schedule a refresh in the background. Safe to call from any thread."""
        if self._config is None:
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            loop = self._loop
            if loop is None or loop.is_closed():
                log.warning("Refresh requested without an event loop; ignoring")
                return
            loop.call_soon_threadsafe(self._spawn_refresh)
            return
        self._spawn_refresh(loop)

    def _spawn_refresh(self, loop: Optional[asyncio.AbstractEventLoop] = None) -> None:
        loop = loop or asyncio.get_running_loop()
        self._track(loop.create_task(self.refresh()))

    def _track(self, task: asyncio.Task) -> None:
        # keep a reference until done, the loop only holds weak ones
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def aclose(self) -> None:
        """Cancel pending loads and refreshes and forget all state."""
        for task in list(self._tasks):
            task.cancel()
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)
        self._config = None
        self.cache.clear()

    async def __aenter__(self) -> "Piloted":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()


def _completion(callback: Callback) -> Callable[[asyncio.Task], None]:
    """Adapt a ``callback(error)`` to a task done-callback."""

    def done(task: asyncio.Task) -> None:
        if task.cancelled():
            callback(asyncio.CancelledError())
            return
        callback(task.exception())

    return done


# Process-wide default instance
_piloted_instance: Optional[Piloted] = None


def get_piloted() -> Piloted:
    """Get or create the process-wide Piloted instance."""
    global _piloted_instance

    if _piloted_instance is None:
        _piloted_instance = Piloted()

    return _piloted_instance


def reset_piloted() -> None:
    """Drop the process-wide instance. Used for testing or reconfiguration."""
    global _piloted_instance
    _piloted_instance = None


def configure(config: Any, callback: Optional[Callback] = None) -> asyncio.Task:
    return get_piloted().configure(config, callback)


def resolve(name: str) -> BackendEntry:
    return get_piloted().resolve(name)


async def refresh() -> None:
    await get_piloted().refresh()


def trigger_refresh() -> None:
    get_piloted().trigger_refresh()
