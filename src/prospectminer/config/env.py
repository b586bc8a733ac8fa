"""Credentials and switches read from the process environment."""

from __future__ import annotations

import os
from typing import TYPE_CHECKING

from .errors import MissingConfigurationError

if TYPE_CHECKING:
    from collections.abc import Sequence


def _read(name: str) -> str | None:
    value = (os.getenv(name) or "").strip()
    return value or None


def require_env_vars(names: Sequence[str]) -> dict[str, str]:
    """Return every named variable, stripped; blank counts as missing."""

    found = {name: _read(name) for name in names}
    if missing := sorted(name for name, value in found.items() if value is None):
        raise MissingConfigurationError(*missing)
    return {name: value for name, value in found.items() if value is not None}


def require_env_var(name: str) -> str:
    return require_env_vars((name,))[name]
