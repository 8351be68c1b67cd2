"""Environment-variable placeholders in configuration strings.

Placeholders look like ``{{ .NAME }}``. Known variables are substituted with
their raw value; unknown ones are left exactly as written.
"""
from __future__ import annotations

import os
import re
from typing import Mapping, Optional

PLACEHOLDER = re.compile(r"\{\{\s*\.([A-Za-z_][A-Za-z0-9_]*)\s*\}\}")


def resolve_template(text: str, env: Optional[Mapping[str, str]] = None) -> str:
    """Substitute ``{{ .NAME }}`` placeholders in ``text`` from ``env`` (default: os.environ)."""
    source = os.environ if env is None else env

    def substitute(match: re.Match) -> str:
        value = source.get(match.group(1))
        return match.group(0) if value is None else value

    return PLACEHOLDER.sub(substitute, text)
