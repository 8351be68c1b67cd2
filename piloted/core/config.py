"""Runtime settings for piloted.

Provides strongly-typed settings using Pydantic and a loader from environment
variables with defaults suitable for local development against a Consul agent.
"""

from __future__ import annotations

import os
from pydantic import BaseModel, Field, ValidationError

from piloted.core.errors import ConfigError


class Settings(BaseModel):
    """Pydantic settings for the discovery client."""
    # Used when a configuration does not name its own discovery endpoint
    consul: str = "consul:8500"
    scheme: str = "http"
    catalog_path: str = "/v1/catalog/service"
    # Same default as httpx
    request_timeout_s: float = Field(default=5.0, gt=0)


def load_settings() -> Settings:
    """Load settings from environment variables and return a Settings object."""
    try:
        return Settings(
            consul=os.getenv("PILOTED_CONSUL", "consul:8500"),
            scheme=os.getenv("PILOTED_SCHEME", "http"),
            catalog_path=os.getenv("PILOTED_CATALOG_PATH", "/v1/catalog/service"),
            request_timeout_s=float(os.getenv("PILOTED_REQUEST_TIMEOUT_S", "5.0")),
        )
    except (ValidationError, ValueError) as e:
        raise ConfigError(f"Invalid settings: {e}") from e


settings = load_settings()
