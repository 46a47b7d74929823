"""Environment-driven settings and logging setup for the demo."""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Any, Callable, Mapping, Optional

from errors import ConfigError

LOG_FORMAT = "[%(levelname)s] %(message)s"


@dataclass(frozen=True)
class Settings:
    base_url: Optional[str] = None
    model: str = "gpt-4o"
    # not all models support structured output
    extract_model: str = "gpt-4o-2024-08-06"
    timeout: float = 60.0
    max_retries: int = 0
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        """Read settings from DEMO_* environment variables, falling back to defaults.

        Raises:
            ConfigError: If DEMO_TIMEOUT or DEMO_MAX_RETRIES is not a number.
        """
        env = os.environ if environ is None else environ
        return cls(
            base_url=env.get("DEMO_BASE_URL") or None,
            model=env.get("DEMO_MODEL", cls.model),
            extract_model=env.get("DEMO_EXTRACT_MODEL", cls.extract_model),
            timeout=_number(env, "DEMO_TIMEOUT", float, cls.timeout),
            max_retries=_number(env, "DEMO_MAX_RETRIES", int, cls.max_retries),
            log_level=env.get("DEMO_LOG_LEVEL", cls.log_level).upper(),
        )


def _number(env: Mapping[str, str], key: str, kind: Callable[[str], Any], default: Any) -> Any:
    raw = env.get(key)
    if raw is None:
        return default
    try:
        return kind(raw)
    except ValueError as exc:
        raise ConfigError(f"{key} must be {kind.__name__}, got {raw!r}") from exc


def configure_logging(settings: Settings) -> None:
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format=LOG_FORMAT,
    )
