"""RulesIndex: build the rule registry from a rules directory and swap it on rebuild."""

from __future__ import annotations

import hashlib
import logging
import threading
from collections.abc import Iterable, Iterator
from pathlib import Path

from ruledex.rule_engine.config import RulesConfig
from ruledex.rule_engine.graph import DependencyGraph
from ruledex.rule_engine.models import (
    CyclicDependency,
    DanglingDependency,
    FileReport,
    RuleDocument,
    Severity,
    ValidationFinding,
)
from ruledex.rule_engine.parser import ParseError, parse_rule
from ruledex.rule_engine.triggers import TriggerIndex
from ruledex.rule_engine.validator import validate_rule

logger = logging.getLogger(__name__)


def iter_rule_sources(rules_dir: Path, exclude: Iterable[str] = ()) -> Iterator[tuple[str, str]]:
    """Yield (path, text) for every *.md rule file, sorted by file name."""
    skip = set(exclude)
    if not rules_dir.is_dir():
        return
    for md_file in sorted(rules_dir.glob("*.md"), key=lambda p: p.name):
        if md_file.name in skip:
            continue
        yield str(md_file), md_file.read_text(encoding="utf-8")


class RuleRegistry:
    """Immutable result of one corpus build."""

    def __init__(
        self,
        documents: list[RuleDocument],
        reports: list[FileReport],
        config: RulesConfig,
    ) -> None:
        self.config = config
        self._documents: dict[str, RuleDocument] = {d.id: d for d in documents}
        self.graph = DependencyGraph(documents)
        self.trigger_index = TriggerIndex(documents)
        self.snapshot_hash = _hash("".join(d.content_hash for d in documents))

        by_id = {r.rule_id: r for r in reports}
        unreadable = {r.rule_id: r.parse_error for r in reports if r.parse_error is not None}
        for dangling in self.graph.dangling:
            if dangling.target in unreadable:
                reason = unreadable[dangling.target]
                message = f"depends on unreadable rule {dangling.target}: {reason}"
            else:
                message = f"depends on missing rule {dangling.target}"
            by_id[dangling.rule_id].findings.append(
                ValidationFinding(
                    rule_id=dangling.rule_id,
                    severity=Severity.CRITICAL,
                    check="dangling-dependency",
                    message=message,
                )
            )
        for cycle in self.graph.cycles:
            for member in dict.fromkeys(cycle.path):
                by_id[member].findings.append(
                    ValidationFinding(
                        rule_id=member,
                        severity=Severity.CRITICAL,
                        check="cyclic-dependency",
                        message=f"dependency cycle {cycle}",
                    )
                )
        self.reports = reports

    @property
    def foundation(self) -> str:
        return self.config.foundation

    @property
    def documents(self) -> list[RuleDocument]:
        return list(self._documents.values())

    def get(self, rule_id: str) -> RuleDocument | None:
        return self._documents.get(rule_id)

    def __contains__(self, rule_id: object) -> bool:
        return rule_id in self._documents

    def __len__(self) -> int:
        return len(self._documents)

    @property
    def dangling(self) -> list[DanglingDependency]:
        return list(self.graph.dangling)

    @property
    def cycles(self) -> list[CyclicDependency]:
        return list(self.graph.cycles)

    @property
    def parse_errors(self) -> dict[str, str]:
        return {r.rule_id: r.parse_error for r in self.reports if r.parse_error is not None}

    def count(self, severity: Severity) -> int:
        return sum(r.count(severity) for r in self.reports)

    @property
    def critical_count(self) -> int:
        return self.count(Severity.CRITICAL) + len(self.parse_errors)

    @property
    def passed(self) -> bool:
        return self.critical_count == 0


def build_registry(
    sources: Iterable[tuple[str, str]],
    config: RulesConfig | None = None,
) -> RuleRegistry:
    """Parse, validate and index a corpus. One bad file never blocks the rest."""
    config = config or RulesConfig()
    documents: list[RuleDocument] = []
    reports: list[FileReport] = []

    for path, text in sources:
        rule_id = Path(path).name
        try:
            doc = parse_rule(text, rule_id, path=path)
        except ParseError as e:
            logger.warning(f"Skipping unreadable rule {path}: {e.message}")
            reports.append(FileReport(rule_id=rule_id, path=path, parse_error=e.message))
            continue
        findings = validate_rule(
            doc, schema_version=config.schema_version, foundation=config.foundation
        )
        logger.debug(f"Parsed {rule_id}: {len(doc.triggers)} triggers, {len(findings)} findings")
        documents.append(doc)
        reports.append(FileReport(rule_id=rule_id, path=path, findings=findings))

    registry = RuleRegistry(documents, reports, config)
    logger.info(
        f"Indexed {len(documents)} rules ({len(registry.parse_errors)} unreadable, "
        f"{len(registry.trigger_index)} triggers, {len(registry.cycles)} cycles)"
    )
    return registry


class RulesIndex:
    """Published handle to the current RuleRegistry.

    Rebuilds construct a fresh registry and then replace the reference, so
    readers holding the previous registry never observe a half-built one.
    """

    def __init__(
        self,
        project_root: Path,
        *,
        config: RulesConfig | None = None,
        rules_dir: Path | None = None,
    ) -> None:
        self._config = config or RulesConfig()
        self._rules_dir = rules_dir or (project_root / self._config.rules_dir)
        self._registry: RuleRegistry | None = None
        self._lock = threading.Lock()

    @property
    def rules_dir(self) -> Path:
        return self._rules_dir

    @property
    def config(self) -> RulesConfig:
        return self._config

    def load(self) -> RuleRegistry:
        """Build a new registry from disk and publish it."""
        registry = build_registry(
            iter_rule_sources(self._rules_dir, self._config.exclude), self._config
        )
        with self._lock:
            self._registry = registry
        return registry

    def refresh(self) -> RuleRegistry:
        """Force reload."""
        return self.load()

    @property
    def registry(self) -> RuleRegistry:
        current = self._registry
        if current is None:
            return self.load()
        return current


def _hash(content: str) -> str:
    return hashlib.sha256(content.encode()).hexdigest()
