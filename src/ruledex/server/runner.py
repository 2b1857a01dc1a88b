"""Uvicorn launcher for the rules HTTP API."""

from __future__ import annotations

from pathlib import Path

from ruledex.rule_engine.config import CONFIG_FILENAME
from ruledex.server.config import ServerConfig, load_server_config


def run_server(config: ServerConfig | None = None) -> None:
    """Start the HTTP API server with uvicorn."""
    import uvicorn

    if config is None:
        config = load_server_config(Path.cwd() / CONFIG_FILENAME)

    uvicorn.run(
        "ruledex.server.app:create_app",
        factory=True,
        host=config.host,
        port=config.port,
    )
