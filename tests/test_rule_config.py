"""Tests for rule_engine/config.py — RulesConfig loading with env var overrides."""

from __future__ import annotations

import json

import pytest


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for name in (
        "RULEDEX_RULES_DIR",
        "RULEDEX_SCHEMA_VERSION",
        "RULEDEX_FOUNDATION",
        "RULEDEX_FAIL_ON_HIGH",
    ):
        monkeypatch.delenv(name, raising=False)


@pytest.mark.unit
class TestRulesConfigDefaults:
    def test_defaults(self):
        from ruledex.rule_engine.config import RulesConfig

        cfg = RulesConfig()
        assert cfg.rules_dir == "rules"
        assert cfg.schema_version == "v3.2"
        assert cfg.foundation == "000-global-core.md"
        assert cfg.exclude == ["README.md", "RULES_INDEX.md"]
        assert cfg.fail_on_high is False

    def test_is_dataclass(self):
        import dataclasses

        from ruledex.rule_engine.config import RulesConfig

        assert dataclasses.is_dataclass(RulesConfig)

    def test_exclude_not_shared(self):
        from ruledex.rule_engine.config import RulesConfig

        a = RulesConfig()
        a.exclude.append("x.md")
        assert RulesConfig().exclude == ["README.md", "RULES_INDEX.md"]


@pytest.mark.unit
class TestLoadRulesConfig:
    def test_returns_defaults_when_no_file(self, tmp_path):
        from ruledex.rule_engine.config import load_rules_config

        cfg = load_rules_config(tmp_path / "nonexistent.json")
        assert cfg.rules_dir == "rules"

    def test_returns_defaults_for_none_path(self):
        from ruledex.rule_engine.config import load_rules_config

        assert load_rules_config(None).foundation == "000-global-core.md"

    def test_loads_from_rules_section(self, tmp_path):
        from ruledex.rule_engine.config import load_rules_config

        config_file = tmp_path / ".ruledex.json"
        config_file.write_text(
            json.dumps(
                {
                    "rules": {
                        "rules_dir": "docs/rules",
                        "schema_version": "v4.0",
                        "foundation": "001-root.md",
                        "exclude": ["INDEX.md"],
                        "fail_on_high": True,
                    }
                }
            )
        )
        cfg = load_rules_config(config_file)
        assert cfg.rules_dir == "docs/rules"
        assert cfg.schema_version == "v4.0"
        assert cfg.foundation == "001-root.md"
        assert cfg.exclude == ["INDEX.md"]
        assert cfg.fail_on_high is True

    def test_wrong_types_ignored(self, tmp_path):
        from ruledex.rule_engine.config import load_rules_config

        config_file = tmp_path / ".ruledex.json"
        config_file.write_text(
            json.dumps({"rules": {"fail_on_high": "yes", "exclude": "README.md", "foundation": 3}})
        )
        cfg = load_rules_config(config_file)
        assert cfg.fail_on_high is False
        assert cfg.exclude == ["README.md", "RULES_INDEX.md"]
        assert cfg.foundation == "000-global-core.md"

    def test_invalid_json_falls_back(self, tmp_path, caplog):
        from ruledex.rule_engine.config import load_rules_config

        config_file = tmp_path / ".ruledex.json"
        config_file.write_text("{not json")
        cfg = load_rules_config(config_file)
        assert cfg.rules_dir == "rules"
        assert "Failed to load rules config" in caplog.text

    def test_empty_file(self, tmp_path):
        from ruledex.rule_engine.config import load_rules_config

        config_file = tmp_path / ".ruledex.json"
        config_file.write_text("  ")
        assert load_rules_config(config_file).rules_dir == "rules"

    def test_env_overrides(self, tmp_path, monkeypatch):
        from ruledex.rule_engine.config import load_rules_config

        config_file = tmp_path / ".ruledex.json"
        config_file.write_text(json.dumps({"rules": {"schema_version": "v4.0"}}))
        monkeypatch.setenv("RULEDEX_SCHEMA_VERSION", "v5.0")
        monkeypatch.setenv("RULEDEX_RULES_DIR", "other")
        monkeypatch.setenv("RULEDEX_FOUNDATION", "root.md")
        monkeypatch.setenv("RULEDEX_FAIL_ON_HIGH", "1")
        cfg = load_rules_config(config_file)
        assert cfg.schema_version == "v5.0"
        assert cfg.rules_dir == "other"
        assert cfg.foundation == "root.md"
        assert cfg.fail_on_high is True
