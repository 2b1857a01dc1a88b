"""Tests for rule_engine/index.py — corpus build, reports, registry swap."""

from __future__ import annotations

from pathlib import Path

import pytest

from ruledex.rule_engine.config import RulesConfig
from ruledex.rule_engine.index import RulesIndex, build_registry, iter_rule_sources
from ruledex.rule_engine.models import Severity


@pytest.mark.unit
class TestIterRuleSources:
    def test_sorted_by_name_and_excludes(self, rules_dir: Path):
        names = [Path(p).name for p, _ in iter_rule_sources(rules_dir, ["README.md"])]
        assert names == [
            "000-global-core.md",
            "200-python-core.md",
            "206-python-pytest.md",
            "300-sql-core.md",
        ]

    def test_missing_dir_yields_nothing(self, tmp_path: Path):
        assert list(iter_rule_sources(tmp_path / "nope")) == []

    def test_ignores_non_markdown(self, rules_dir: Path):
        (rules_dir / "notes.txt").write_text("x")
        names = [Path(p).name for p, _ in iter_rule_sources(rules_dir)]
        assert "notes.txt" not in names


@pytest.mark.unit
class TestBuildRegistry:
    def test_valid_corpus_passes(self, rules_dir: Path):
        registry = build_registry(iter_rule_sources(rules_dir, ["README.md"]))
        assert len(registry) == 4
        assert registry.passed
        assert registry.critical_count == 0
        assert registry.dangling == []
        assert registry.cycles == []

    def test_parse_error_isolated(self, rules_dir: Path, make_rule):
        (rules_dir / "400-bad.md").write_text(make_rule(load_trigger="xyz:foo"))
        registry = build_registry(iter_rule_sources(rules_dir, ["README.md"]))
        assert len(registry) == 4
        assert "400-bad.md" not in registry
        assert "unrecognized LoadTrigger prefix" in registry.parse_errors["400-bad.md"]
        assert not registry.passed
        report = next(r for r in registry.reports if r.rule_id == "400-bad.md")
        assert not report.passed

    def test_readme_without_exclude_is_unreadable(self, rules_dir: Path):
        registry = build_registry(iter_rule_sources(rules_dir))
        assert "README.md" in registry.parse_errors

    def test_dangling_becomes_critical_finding(self, make_rule, foundation_text):
        registry = build_registry(
            [
                ("000-global-core.md", foundation_text),
                ("100-x.md", make_rule(depends="999-missing.md")),
            ]
        )
        assert [(d.rule_id, d.target) for d in registry.dangling] == [("100-x.md", "999-missing.md")]
        report = next(r for r in registry.reports if r.rule_id == "100-x.md")
        assert [f.check for f in report.findings] == ["dangling-dependency"]
        assert report.findings[0].severity == Severity.CRITICAL
        assert not registry.passed

    def test_dependency_on_unreadable_rule_names_parse_error(self, make_rule, foundation_text):
        registry = build_registry(
            [
                ("000-global-core.md", foundation_text),
                ("100-x.md", make_rule(depends="400-bad.md")),
                ("400-bad.md", make_rule(load_trigger="xyz:foo")),
            ]
        )
        report = next(r for r in registry.reports if r.rule_id == "100-x.md")
        assert len(report.findings) == 1
        message = report.findings[0].message
        assert message.startswith("depends on unreadable rule 400-bad.md")
        assert "unrecognized LoadTrigger prefix" in message
        assert "missing" not in message

    def test_cycle_becomes_critical_for_members(self, make_rule):
        registry = build_registry(
            [("a.md", make_rule(depends="b.md")), ("b.md", make_rule(depends="a.md"))],
            RulesConfig(foundation="none.md"),
        )
        assert len(registry.cycles) == 1
        for report in registry.reports:
            assert [f.check for f in report.findings] == ["cyclic-dependency"]
        assert registry.critical_count == 2

    def test_findings_use_config(self, rules_dir: Path):
        config = RulesConfig(schema_version="v9.9", exclude=["README.md"])
        registry = build_registry(iter_rule_sources(rules_dir, config.exclude), config)
        assert registry.count(Severity.CRITICAL) == 4

    def test_snapshot_hash_changes_with_content(self, rules_dir: Path):
        first = build_registry(iter_rule_sources(rules_dir, ["README.md"]))
        (rules_dir / "300-sql-core.md").write_text(
            (rules_dir / "300-sql-core.md").read_text() + "\nMore.\n"
        )
        second = build_registry(iter_rule_sources(rules_dir, ["README.md"]))
        assert first.snapshot_hash != second.snapshot_hash


@pytest.mark.unit
class TestRulesIndex:
    def test_default_rules_dir(self, tmp_path: Path):
        index = RulesIndex(tmp_path)
        assert index.rules_dir == tmp_path / "rules"

    def test_registry_loads_lazily(self, rules_dir: Path):
        index = RulesIndex(rules_dir.parent)
        assert len(index.registry) == 4

    def test_refresh_swaps_registry(self, rules_dir: Path, make_rule):
        index = RulesIndex(rules_dir.parent)
        before = index.load()
        (rules_dir / "500-go.md").write_text(make_rule(load_trigger="ext:.go"))
        after = index.refresh()
        assert after is not before
        assert index.registry is after
        assert "500-go.md" in after
        # readers holding the old registry keep a consistent view
        assert "500-go.md" not in before
        assert len(before) == 4

    def test_explicit_rules_dir(self, rules_dir: Path, tmp_path: Path):
        index = RulesIndex(tmp_path / "elsewhere", rules_dir=rules_dir)
        assert len(index.load()) == 4
