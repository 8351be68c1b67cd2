"""Exception types raised by piloted."""
from __future__ import annotations

from typing import Optional, Sequence


class PilotedError(Exception):
    """Base class for all piloted errors."""


class ConfigError(PilotedError, ValueError):
    """Configuration is missing or malformed. Raised before any network I/O."""


class FetchError(PilotedError):
    """The discovery endpoint was unreachable or answered with a non-200 status.

    When several backends fail during one load, a single FetchError is raised
    whose ``errors`` lists every per-backend failure and whose ``backend``
    names the first one.
    """

    def __init__(
        self,
        message: str,
        *,
        backend: Optional[str] = None,
        url: Optional[str] = None,
        status_code: Optional[int] = None,
        errors: Optional[Sequence["FetchError"]] = None,
    ):
        super().__init__(message)
        self.backend = backend
        self.url = url
        self.status_code = status_code
        self.errors: list[FetchError] = list(errors) if errors else [self]

    @classmethod
    def aggregate(cls, failures: Sequence["FetchError"]) -> "FetchError":
        """Collapse per-backend failures into the one error reported to the caller."""
        if len(failures) == 1:
            return failures[0]
        first = failures[0]
        names = ", ".join(str(f.backend) for f in failures)
        return cls(
            f"{len(failures)} backends failed to load: {names}",
            backend=first.backend,
            url=first.url,
            status_code=first.status_code,
            errors=failures,
        )


class UnknownBackend(PilotedError, LookupError):
    """Lookup for a backend name that has no populated cache entry."""

    def __init__(self, backend: str):
        super().__init__(f"backend {backend!r} is not configured or has no instances")
        self.backend = backend
