"""Shared fixtures for ruledex tests."""

from collections.abc import Callable
from pathlib import Path

import pytest

FOUNDATION = "000-global-core.md"

_DEFAULT_KEYWORDS = "alpha, beta, gamma, delta, epsilon"


def _section_text(name: str) -> str:
    if name == "Contract":
        return "## Contract\n\n### Inputs\n\n- files\n\n### Outputs\n\n- code\n"
    return f"## {name}\n\nSome {name.lower()} text.\n"


def build_rule_text(
    *,
    title: str = "Example Rule",
    schema_version: str | None = "v3.2",
    rule_version: str | None = "1.0.0",
    last_updated: str | None = "2026-01-15",
    load_trigger: str | None = None,
    keywords: str | None = _DEFAULT_KEYWORDS,
    token_budget: str | None = "~1200",
    context_tier: str | None = "High",
    depends: str | None = FOUNDATION,
    sections: tuple[str, ...] = ("Scope", "References", "Contract", "Anti-Patterns"),
    metadata: list[tuple[str, str]] | None = None,
) -> str:
    """Render a rule document; pass None to omit a field, or metadata to set fields verbatim."""
    if metadata is None:
        metadata = [
            (key, value)
            for key, value in (
                ("SchemaVersion", schema_version),
                ("RuleVersion", rule_version),
                ("LastUpdated", last_updated),
                ("LoadTrigger", load_trigger),
                ("Keywords", keywords),
                ("TokenBudget", token_budget),
                ("ContextTier", context_tier),
                ("Depends", depends),
            )
            if value is not None
        ]
    lines = [f"# {title}", ""]
    lines += [f"**{key}:** {value}" for key, value in metadata]
    lines.append("")
    lines += [_section_text(name) for name in sections]
    return "\n".join(lines)


@pytest.fixture
def make_rule() -> Callable[..., str]:
    return build_rule_text


@pytest.fixture
def foundation_text() -> str:
    return build_rule_text(title="Global Core", depends="None", context_tier="Critical")


@pytest.fixture
def rules_dir(tmp_path: Path, foundation_text: str) -> Path:
    """A small valid corpus: foundation, python core, python testing, sql."""
    d = tmp_path / "rules"
    d.mkdir()
    (d / FOUNDATION).write_text(foundation_text)
    (d / "200-python-core.md").write_text(
        build_rule_text(
            title="Python Core",
            load_trigger="ext:.py, file:pyproject.toml, kw:python",
            token_budget="~1500",
        )
    )
    (d / "206-python-pytest.md").write_text(
        build_rule_text(
            title="Python Testing",
            load_trigger="file:conftest.py, dir:tests, kw:pytest",
            depends="200-python-core.md",
            token_budget="~800",
        )
    )
    (d / "300-sql-core.md").write_text(
        build_rule_text(title="SQL Core", load_trigger="ext:.sql, kw:sql", token_budget="~900")
    )
    (d / "README.md").write_text("# Rules\n\nIndex of rules.\n")
    return d
