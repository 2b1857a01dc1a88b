"""SchemaValidator: grade a parsed rule against the schema contract."""

from __future__ import annotations

import re

from ruledex.rule_engine.models import (
    METADATA_ORDER,
    SECTION_ORDER,
    ContextTier,
    RuleDocument,
    Severity,
    ValidationFinding,
)

ACTIVE_SCHEMA_VERSION = "v3.2"
DEFAULT_FOUNDATION = "000-global-core.md"

KEYWORDS_MIN = 5
KEYWORDS_MAX = 20

_TOKEN_BUDGET = re.compile(r"^~\d+$")
_RULE_VERSION = re.compile(r"^\d+\.\d+(\.\d+)?$")
_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_NUMBERED_HEADING = re.compile(r"^\d+\.\s")
_MARKUP_TAG = re.compile(r"</?[A-Za-z][\w-]*(\s[^<>]*)?/?>")


def _version(value: str) -> str:
    return value.strip().lstrip("vV")


def validate_rule(
    doc: RuleDocument,
    *,
    schema_version: str = ACTIVE_SCHEMA_VERSION,
    foundation: str = DEFAULT_FOUNDATION,
) -> list[ValidationFinding]:
    """Return findings for a readable document. Never raises for non-compliance."""
    findings: list[ValidationFinding] = []

    def add(severity: Severity, check: str, message: str) -> None:
        findings.append(
            ValidationFinding(rule_id=doc.id, severity=severity, check=check, message=message)
        )

    is_foundation = doc.id == foundation

    # Metadata
    declared = doc.get("SchemaVersion") or ""
    if _version(declared) != _version(schema_version):
        add(
            Severity.CRITICAL,
            "schema-version",
            f"SchemaVersion {declared!r} does not match active version {schema_version!r}",
        )

    known = [k for k in doc.metadata_keys if k in METADATA_ORDER]
    expected = sorted(dict.fromkeys(known), key=METADATA_ORDER.index)
    if list(dict.fromkeys(known)) != expected:
        add(
            Severity.HIGH,
            "field-order",
            f"metadata fields out of order: {', '.join(known)} (expected {', '.join(expected)})",
        )

    seen: set[str] = set()
    for key in doc.metadata_keys:
        if key in seen:
            add(Severity.HIGH, "duplicate-field", f"metadata field {key} declared more than once")
        seen.add(key)

    for key in dict.fromkeys(doc.metadata_keys):
        if key not in METADATA_ORDER:
            add(Severity.INFO, "unknown-field", f"unrecognized metadata field {key}")

    rule_version = doc.get("RuleVersion")
    if rule_version is None:
        add(Severity.HIGH, "rule-version", "missing RuleVersion")
    elif not _RULE_VERSION.match(rule_version.strip()):
        add(Severity.MEDIUM, "rule-version", f"RuleVersion {rule_version!r} is not MAJOR.MINOR[.PATCH]")

    last_updated = doc.get("LastUpdated")
    if last_updated is not None and not _DATE.match(last_updated.strip()):
        add(Severity.MEDIUM, "last-updated", f"LastUpdated {last_updated!r} is not YYYY-MM-DD")

    count = len(doc.keywords)
    if not KEYWORDS_MIN <= count <= KEYWORDS_MAX:
        add(
            Severity.HIGH,
            "keyword-count",
            f"Keywords has {count} entries (allowed {KEYWORDS_MIN}-{KEYWORDS_MAX})",
        )

    budget = doc.get("TokenBudget")
    if budget is None or not _TOKEN_BUDGET.match(budget.strip()):
        add(Severity.MEDIUM, "token-budget", f"TokenBudget {budget!r} does not match ~<integer>")

    tier = doc.get("ContextTier")
    if tier is None or tier.strip() not in {t.value for t in ContextTier}:
        add(
            Severity.CRITICAL,
            "context-tier",
            f"ContextTier {tier!r} is not one of {', '.join(t.value for t in ContextTier)}",
        )

    if is_foundation:
        if doc.depends:
            add(
                Severity.CRITICAL,
                "foundation-depends",
                f"foundation rule must not depend on other rules: {', '.join(doc.depends)}",
            )
        if doc.has("LoadTrigger"):
            add(Severity.HIGH, "foundation-trigger", "foundation rule must not declare LoadTrigger")
    elif not doc.depends:
        add(Severity.CRITICAL, "depends", "Depends is missing or empty")

    # Sections
    ordered = [n for n in doc.section_names if n in SECTION_ORDER]
    if ordered != sorted(ordered, key=SECTION_ORDER.index):
        add(
            Severity.HIGH,
            "section-order",
            f"sections out of order: {', '.join(ordered)} (expected {', '.join(SECTION_ORDER)})",
        )

    for section in doc.sections:
        if section.name not in SECTION_ORDER:
            add(Severity.INFO, "unknown-section", f"unrecognized section {section.title!r}")
        for heading in [section.title, *section.subsections]:
            if _NUMBERED_HEADING.match(heading):
                add(Severity.HIGH, "numbered-heading", f"numbered heading {heading!r}")

    contract = doc.section("Contract")
    if contract is not None:
        tags = list(dict.fromkeys(m.group(0) for m in _MARKUP_TAG.finditer(contract.body)))
        if tags:
            add(
                Severity.HIGH,
                "contract-markup",
                f"Contract uses markup tags {', '.join(tags)}; use ### subsections instead",
            )

    return findings
