"""Errors raised while loading ``XDB_*`` settings."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable


class ConfigurationError(RuntimeError):
    """An ``XDB_*`` setting is present but cannot be used (bad number, date or id)."""


class MissingConfigurationError(ConfigurationError):
    """Store settings without defaults, such as the base URL or API key, are unset.

    ``names`` lists every missing variable so one run reports them all.
    """

    def __init__(self, names: Iterable[str]) -> None:
        self.names = tuple(sorted(names))
        super().__init__(f"Missing configuration for: {', '.join(self.names)}")
