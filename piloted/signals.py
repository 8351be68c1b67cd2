"""Opt-in wiring of an OS reload signal to ``Piloted.trigger_refresh``.

Nothing here runs on import; the hosting process decides whether a signal
should refresh the cache.
"""
from __future__ import annotations

import asyncio
import logging
import signal
from typing import Optional

from piloted.client import Piloted, get_piloted

log = logging.getLogger("piloted.signals")


def install_refresh_handler(
    piloted: Optional[Piloted] = None,
    signum: int = signal.SIGHUP,
    loop: Optional[asyncio.AbstractEventLoop] = None,
) -> None:
    """Refresh ``piloted`` (default: the process-wide instance) whenever ``signum`` arrives.

    Uses ``loop.add_signal_handler``, so it must be called from the main
    thread on a Unix event loop.
    """
    piloted = piloted or get_piloted()
    loop = loop or asyncio.get_running_loop()
    loop.add_signal_handler(signum, piloted.trigger_refresh)
    log.info("Refreshing on signal %s", signal.Signals(signum).name)


def remove_refresh_handler(signum: int = signal.SIGHUP, loop: Optional[asyncio.AbstractEventLoop] = None) -> bool:
    """Stop listening for ``signum``. Returns False if no handler was installed."""
    loop = loop or asyncio.get_running_loop()
    return loop.remove_signal_handler(signum)
