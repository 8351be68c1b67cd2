"""Configuration validation and the fetch-and-replace cycle."""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Optional

from pydantic import ValidationError

from piloted.core.config import Settings, settings as default_settings
from piloted.core.errors import ConfigError, FetchError
from piloted.core.templating import resolve_template
from piloted.models.schemas import BackendConfig, Configuration
from piloted.services.cache import BackendCache
from piloted.services.discovery_client import DiscoveryClient

log = logging.getLogger("piloted.loader")


class ConfigLoader:
    """Turns a user configuration into cache contents.

    ``prepare`` is synchronous and does no I/O, so configuration errors surface
    before any request is made. ``load`` fetches every backend concurrently and
    writes whatever succeeded before reporting failures.
    """

    def __init__(self, fetcher: DiscoveryClient, cache: BackendCache, settings: Optional[Settings] = None):
        self._fetcher = fetcher
        self._cache = cache
        self._settings = settings or default_settings

    def prepare(self, config: Any) -> Configuration:
        """Validate ``config`` and resolve ``{{ .VAR }}`` placeholders in it."""
        if config is None:
            raise ConfigError("configuration is required")
        try:
            parsed = Configuration.model_validate(config)
        except ValidationError as e:
            raise ConfigError(f"Invalid configuration: {e}") from e

        endpoint = parsed.discovery_endpoint or self._settings.consul
        return Configuration(
            discovery_endpoint=resolve_template(endpoint),
            backends=[BackendConfig(name=resolve_template(b.name)) for b in parsed.backends],
        )

    async def load(self, config: Configuration) -> None:
        """Fetch all backends of an already prepared configuration into the cache.

        Raises FetchError after the successful backends have been written if any
        backend failed.
        """
        endpoint = config.discovery_endpoint
        results = await asyncio.gather(
            *(self._fetcher.fetch(endpoint, b.name) for b in config.backends),
            return_exceptions=True,
        )

        failures: list[FetchError] = []
        unexpected: list[BaseException] = []
        for backend, result in zip(config.backends, results):
            if isinstance(result, FetchError):
                failures.append(result)
            elif isinstance(result, BaseException):
                unexpected.append(result)
            else:
                self._cache.replace_all(backend.name, result)

        # successes are already written; anything that is not a FetchError is a bug
        if unexpected:
            raise unexpected[0]
        if failures:
            log.warning(
                "Loaded %d of %d backend(s) from %s",
                len(config.backends) - len(failures), len(config.backends), endpoint,
            )
            raise FetchError.aggregate(failures)
        log.info("Loaded %d backend(s) from %s", len(config.backends), endpoint)
