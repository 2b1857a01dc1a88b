"""Starlette app factory with lifespan for the rule registry."""

from __future__ import annotations

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from pathlib import Path

from starlette.applications import Starlette

from ruledex.rule_engine.config import CONFIG_FILENAME, RulesConfig, load_rules_config
from ruledex.rule_engine.index import RulesIndex
from ruledex.server.routes_rules import routes as rules_routes
from ruledex.server.routes_system import routes as system_routes


def create_app(
    project_root: Path | None = None,
    config: RulesConfig | None = None,
) -> Starlette:
    """Create a Starlette app serving the rules under project_root."""

    @asynccontextmanager
    async def lifespan(app: Starlette) -> AsyncGenerator[None, None]:
        root = project_root or Path.cwd()
        rules_config = config or load_rules_config(root / CONFIG_FILENAME)
        app.state.rules_index = RulesIndex(root, config=rules_config)
        app.state.rules_index.load()
        yield

    return Starlette(routes=system_routes + rules_routes, lifespan=lifespan)
