"""Server configuration, config file loading, and environment overrides."""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 41787


def _safe_int(value: str, default: int) -> int:
    try:
        return int(value)
    except ValueError:
        return default


@dataclass
class ServerConfig:
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT


def load_server_config(path: Path | None = None) -> ServerConfig:
    """Load the "server" section of .ruledex.json with env var overrides."""
    config = ServerConfig()

    if path and path.exists():
        try:
            data = json.loads(path.read_text())
            section = data.get("server", {})
            if isinstance(section, dict):
                if isinstance(section.get("host"), str):
                    config.host = section["host"]
                if isinstance(section.get("port"), int):
                    config.port = section["port"]
        except (json.JSONDecodeError, OSError) as e:
            logger.warning(f"Failed to load server config from {path}: {e}")

    port_env = os.environ.get("RULEDEX_PORT")
    if port_env:
        config.port = _safe_int(port_env, config.port)

    return config
