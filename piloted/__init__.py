"""piloted: Consul catalog lookups with a round-robin cache.

Example:
    ```python
    import piloted

    await piloted.configure({"consul": "consul:8500", "backends": [{"name": "nginx"}]})
    entry = piloted.resolve("nginx")
    print(entry.address, entry.port)
    ```
"""

from piloted.client import (
    Piloted,
    configure,
    get_piloted,
    refresh,
    reset_piloted,
    resolve,
    trigger_refresh,
)
from piloted.core.errors import ConfigError, FetchError, PilotedError, UnknownBackend
from piloted.core.logging import setup_logging
from piloted.core.templating import resolve_template
from piloted.models.schemas import BackendConfig, BackendEntry, Configuration
from piloted.signals import install_refresh_handler, remove_refresh_handler

__all__ = [
    "Piloted",
    "configure",
    "resolve",
    "refresh",
    "trigger_refresh",
    "get_piloted",
    "reset_piloted",
    "install_refresh_handler",
    "remove_refresh_handler",
    "resolve_template",
    "setup_logging",
    "Configuration",
    "BackendConfig",
    "BackendEntry",
    "PilotedError",
    "ConfigError",
    "FetchError",
    "UnknownBackend",
]

__version__ = "0.1.0"
