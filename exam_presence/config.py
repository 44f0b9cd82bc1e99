from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional


def _get_env(name: str, default: Optional[str] = None) -> Optional[str]:
    value = os.getenv(name, None)
    if value is None:
        return default
    stripped = value.strip()
    if stripped == "":
        return default
    return stripped


def _get_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return default
    try:
        return int(float(value))
    except ValueError as exc:
        raise ValueError(f"Environment value for {name!r} must be an integer") from exc


def _get_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return default
    try:
        return float(value)
    except ValueError as exc:
        raise ValueError(f"Environment value for {name!r} must be a float") from exc


@dataclass(frozen=True)
class UserDirectoryConfig:
    url: Optional[str]
    token: Optional[str]
    timeout: float


@dataclass(frozen=True)
class Config:
    bind: str
    port: int
    log_level: str
    config_dir: Path
    cors_origins: List[str]
    ping_interval: float
    ping_timeout: float
    user_directory: UserDirectoryConfig

    @property
    def users_file(self) -> Path:
        return self.config_dir / "users.yaml"

    def validate(self) -> None:
        if not 0 < self.port < 65536:
            raise ValueError("EXAM_PRESENCE_PORT must be between 1 and 65535.")
        if self.ping_interval <= 0:
            raise ValueError("EXAM_PRESENCE_PING_INTERVAL must be positive.")
        if self.ping_timeout <= 0:
            raise ValueError("EXAM_PRESENCE_PING_TIMEOUT must be positive.")
        if self.user_directory.timeout <= 0:
            raise ValueError("USER_DIRECTORY_TIMEOUT must be positive.")

    @staticmethod
    def load() -> "Config":
        origins_raw = _get_env("EXAM_PRESENCE_CORS_ORIGINS", "*") or "*"
        config = Config(
            bind=_get_env("EXAM_PRESENCE_BIND", "0.0.0.0") or "0.0.0.0",
            port=_get_int("EXAM_PRESENCE_PORT", 5000),
            log_level=(_get_env("EXAM_PRESENCE_LOG_LEVEL", "info") or "info").lower(),
            config_dir=Path(_get_env("EXAM_PRESENCE_CONFIG_DIR", "config") or "config").expanduser().resolve(),
            cors_origins=[o.strip() for o in origins_raw.split(",") if o.strip()] or ["*"],
            # Socket.IO defaults used by the existing clients
            ping_interval=_get_float("EXAM_PRESENCE_PING_INTERVAL", 25.0),
            ping_timeout=_get_float("EXAM_PRESENCE_PING_TIMEOUT", 60.0),
            user_directory=UserDirectoryConfig(
                url=_get_env("USER_DIRECTORY_URL"),
                token=_get_env("USER_DIRECTORY_TOKEN"),
                timeout=_get_float("USER_DIRECTORY_TIMEOUT", 5.0),
            ),
        )
        config.validate()
        return config
