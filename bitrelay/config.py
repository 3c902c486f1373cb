"""Settings, read from BITRELAY_* environment variables."""

from __future__ import annotations

import os
from typing import Mapping, Optional, Tuple

from pydantic import BaseModel, ValidationError, field_validator

from bitrelay.errors import ConfigError

ENV_PREFIX = "BITRELAY_"

# monitor page lookup order for GET /
PAGE_CANDIDATES = (
    "FIM92LOCAL.html",
    "FIM92_LOCAL.html",
    "fim92_local.html",
    "index.html",
)


class Settings(BaseModel):
    host: str = "0.0.0.0"
    port: int = 3000
    sweep_interval: float = 30.0
    send_timeout: float = 5.0
    static_dir: str = "."
    log_level: str = "info"
    page_candidates: Tuple[str, ...] = PAGE_CANDIDATES

    @field_validator("port")
    @classmethod
    def _check_port(cls, v):
        if not 0 < v < 65536:
            raise ValueError("port must be between 1 and 65535")
        return v

    @field_validator("sweep_interval", "send_timeout")
    @classmethod
    def _check_positive(cls, v):
        if v <= 0:
            raise ValueError("must be positive")
        return v

    @field_validator("log_level")
    @classmethod
    def _check_level(cls, v):
        v = v.lower()
        if v not in ("critical", "error", "warning", "info", "debug"):
            raise ValueError(f"unknown log level {v!r}")
        return v

    @classmethod
    def load(cls, env: Optional[Mapping[str, str]] = None, **overrides) -> "Settings":
        """Build settings from the environment; non-None ``overrides`` win."""
        env = os.environ if env is None else env
        values = {}
        for name in ("host", "port", "sweep_interval", "send_timeout", "static_dir", "log_level"):
            key = ENV_PREFIX + name.upper()
            if key in env:
                values[name] = env[key]
        values.update({k: v for k, v in overrides.items() if v is not None})
        try:
            return cls(**values)
        except ValidationError as e:
            raise ConfigError(f"Invalid settings: {e}") from e
