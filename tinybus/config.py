"""Environment-driven configuration for tinybus."""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass

DEFAULT_LOG_LEVEL = "INFO"
DEFAULT_MAX_DEAD_LETTERS = 1000

_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
_TRUTHY = {"1", "true", "yes", "on"}


@dataclass
class BusSettings:
    """Settings shared by buses and the logging setup."""

    log_level: str = DEFAULT_LOG_LEVEL
    json_logs: bool = False
    max_dead_letters: int = DEFAULT_MAX_DEAD_LETTERS

    def __post_init__(self):
        self.log_level = self.log_level.upper()
        if self.log_level not in _LOG_LEVELS:
            raise ValueError(f"unknown log level: {self.log_level}")
        if self.max_dead_letters < 0:
            raise ValueError("max_dead_letters must be >= 0")

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> BusSettings:
        """Load settings from environment variables.

        Args:
            environ: Mapping to read instead of ``os.environ``

        Returns:
            BusSettings instance
        """
        env = os.environ if environ is None else environ

        return cls(
            log_level=env.get("TINYBUS_LOG_LEVEL", "").strip() or DEFAULT_LOG_LEVEL,
            json_logs=env.get("TINYBUS_LOG_JSON", "").strip().lower() in _TRUTHY,
            max_dead_letters=cls._parse_limit(env.get("TINYBUS_MAX_DEAD_LETTERS")),
        )

    @staticmethod
    def _parse_limit(raw: str | None) -> int:
        if raw is None:
            return DEFAULT_MAX_DEAD_LETTERS
        try:
            value = int(raw.strip())
        except ValueError:
            return DEFAULT_MAX_DEAD_LETTERS
        return value if value >= 0 else DEFAULT_MAX_DEAD_LETTERS
