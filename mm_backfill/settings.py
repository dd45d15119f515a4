from __future__ import annotations

import os
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Mapping, Optional

import yaml


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_bool(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "y")


HOST = "127.0.0.1"
PORT = 3000
RECV_TIMEOUT_S = 5.0
CONNECT_TIMEOUT_S = 5.0
CHUNK_SIZE = 1024
OUTPUT_PATH = "output.json"
OUTPUT_FORMAT = "json"
LOG_LEVEL = "INFO"
LOG_DIR = "logs"


@dataclass(frozen=True)
class ClientSettings:
    host: str = HOST
    port: int = PORT
    recv_timeout_s: float = RECV_TIMEOUT_S
    connect_timeout_s: float = CONNECT_TIMEOUT_S
    chunk_size: int = CHUNK_SIZE
    output_path: str = OUTPUT_PATH
    output_format: str = OUTPUT_FORMAT
    write_schema: bool = False
    log_level: str = LOG_LEVEL
    log_dir: str = LOG_DIR
    log_to_file: bool = True

    def validate(self) -> "ClientSettings":
        if not self.host or not str(self.host).strip():
            raise ValueError("host must be a non-empty address")
        if not (1 <= int(self.port) <= 65535):
            raise ValueError(f"port must be in 1..65535 (got {self.port!r})")
        if float(self.recv_timeout_s) <= 0:
            raise ValueError(f"recv_timeout_s must be positive (got {self.recv_timeout_s!r})")
        if int(self.chunk_size) <= 0:
            raise ValueError(f"chunk_size must be positive (got {self.chunk_size!r})")
        if self.output_format not in ("json", "ndjson"):
            raise ValueError(f"output_format must be 'json' or 'ndjson' (got {self.output_format!r})")
        return self


def load_config(path: str | Path) -> dict:
    with open(path, "r") as f:
        data = yaml.safe_load(f)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"config file {path} must contain a mapping")
    return data


def _from_env(base: ClientSettings) -> ClientSettings:
    return replace(
        base,
        host=os.getenv("BACKFILL_HOST", base.host),
        port=_env_int("BACKFILL_PORT", base.port),
        recv_timeout_s=_env_float("BACKFILL_RECV_TIMEOUT_S", base.recv_timeout_s),
        connect_timeout_s=_env_float("BACKFILL_CONNECT_TIMEOUT_S", base.connect_timeout_s),
        chunk_size=_env_int("BACKFILL_CHUNK_SIZE", base.chunk_size),
        output_path=os.getenv("BACKFILL_OUTPUT", base.output_path),
        output_format=os.getenv("BACKFILL_OUTPUT_FORMAT", base.output_format).strip().lower(),
        write_schema=_env_bool("BACKFILL_WRITE_SCHEMA", base.write_schema),
        log_level=os.getenv("LOG_LEVEL", base.log_level),
        log_dir=os.getenv("LOG_DIR", base.log_dir),
        log_to_file=_env_bool("LOG_TO_FILE", base.log_to_file),
    )


def _apply(base: ClientSettings, values: Mapping[str, Any]) -> ClientSettings:
    known = {f.name for f in fields(ClientSettings)}
    unknown = sorted(set(values) - known)
    if unknown:
        raise ValueError(f"Unknown config keys: {', '.join(unknown)}")
    return replace(base, **{k: v for k, v in values.items() if v is not None})


def load_settings(
    config_path: Optional[str | Path] = None,
    overrides: Optional[Mapping[str, Any]] = None,
) -> ClientSettings:
    """Build settings with precedence overrides > env > YAML file > defaults."""
    settings = ClientSettings()
    path = config_path or os.getenv("CONFIG_PATH")
    if path:
        settings = _apply(settings, load_config(path))
    settings = _from_env(settings)
    if overrides:
        settings = _apply(settings, overrides)
    return settings.validate()
