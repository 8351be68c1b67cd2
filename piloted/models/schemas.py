"""Pydantic models for configuration and the Consul catalog payload."""
from __future__ import annotations

from typing import Any, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator


class BackendConfig(BaseModel):
    """One backend service to discover, by catalog name."""

    model_config = ConfigDict(extra="ignore")

    name: str = Field(min_length=1)


class Configuration(BaseModel):
    """What to discover and where.

    The discovery endpoint is accepted under its wire name ``consul``, as
    ``discoveryEndpoint`` or as ``discovery_endpoint``. ``None`` means "use the
    configured default".
    """

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    discovery_endpoint: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("consul", "discoveryEndpoint", "discovery_endpoint"),
    )
    backends: list[BackendConfig] = Field(min_length=1)


class CatalogService(BaseModel):
    """The ``Service`` object inside a catalog record. Values are opaque strings."""

    model_config = ConfigDict(extra="ignore")

    Address: str
    Port: str

    @field_validator("Address", "Port", mode="before")
    @classmethod
    def _stringify(cls, value: Any) -> Any:
        # Consul reports ports as numbers, the JSON can carry either
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
        return value


class ServiceRecord(BaseModel):
    """Raw catalog entry as returned by the discovery endpoint."""

    model_config = ConfigDict(extra="ignore")

    Service: CatalogService


class BackendEntry(BaseModel):
    """A resolved backend instance."""

    model_config = ConfigDict(frozen=True)

    address: str
    port: str

    @classmethod
    def from_record(cls, record: ServiceRecord) -> "BackendEntry":
        return cls(address=record.Service.Address, port=record.Service.Port)
