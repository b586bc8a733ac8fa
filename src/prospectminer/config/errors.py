"""Errors raised while assembling settings, credentials and source options.

The CLI treats every :class:`ConfigurationError` as fatal. The loader raises it
for unreadable or invalid config files, :mod:`.env` for absent credentials and
the discovery adapters for unusable source options.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from pathlib import Path


class ConfigurationError(RuntimeError):
    """Settings cannot be used as given.

    ``origin`` names what was being read: a config file path, a source name
    or ``"environment"``.
    """

    def __init__(self, message: str, *, origin: Path | str | None = None) -> None:
        super().__init__(message)
        self.origin = origin


class MissingConfigurationError(ConfigurationError):
    """One or more required environment variables are unset or blank."""

    def __init__(self, *names: str) -> None:
        self.names = tuple(sorted(names))
        super().__init__(
            f"Missing configuration for: {', '.join(self.names)}", origin="environment"
        )
