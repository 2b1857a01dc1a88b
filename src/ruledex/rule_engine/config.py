"""RulesConfig dataclass and loader for rule engine settings."""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

from ruledex.rule_engine.validator import ACTIVE_SCHEMA_VERSION, DEFAULT_FOUNDATION

logger = logging.getLogger(__name__)

CONFIG_FILENAME = ".ruledex.json"


@dataclass
class RulesConfig:
    rules_dir: str = "rules"
    schema_version: str = ACTIVE_SCHEMA_VERSION
    foundation: str = DEFAULT_FOUNDATION
    exclude: list[str] = field(default_factory=lambda: ["README.md", "RULES_INDEX.md"])
    fail_on_high: bool = False


def load_rules_config(path: Path | None = None) -> RulesConfig:
    """Load rules config from .ruledex.json with env var overrides."""
    config = RulesConfig()
    if path and path.exists():
        try:
            text = path.read_text()
            if text.strip():
                data = json.loads(text)
                section = data.get("rules", {})
                if isinstance(section, dict):
                    _apply(config, section)
        except (json.JSONDecodeError, OSError) as e:
            logger.warning(f"Failed to load rules config from {path}: {e}")

    if env_val := os.environ.get("RULEDEX_RULES_DIR"):
        config.rules_dir = env_val
    if env_val := os.environ.get("RULEDEX_SCHEMA_VERSION"):
        config.schema_version = env_val
    if env_val := os.environ.get("RULEDEX_FOUNDATION"):
        config.foundation = env_val
    if env_val := os.environ.get("RULEDEX_FAIL_ON_HIGH"):
        config.fail_on_high = env_val.lower() in ("true", "1", "yes")
    return config


def _apply(cfg: RulesConfig, data: dict[str, object]) -> None:
    for key in ("rules_dir", "schema_version", "foundation"):
        value = data.get(key)
        if isinstance(value, str) and value:
            setattr(cfg, key, value)
    exclude = data.get("exclude")
    if isinstance(exclude, list) and all(isinstance(e, str) for e in exclude):
        cfg.exclude = list(exclude)
    if "fail_on_high" in data and isinstance(data["fail_on_high"], bool):
        cfg.fail_on_high = data["fail_on_high"]
