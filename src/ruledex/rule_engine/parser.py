"""RuleParser: turn one rule document's markdown into a RuleDocument.

Lines are classified by an ordered grammar (fence, heading, metadata line,
list item, blank, text) so that structural failures are deterministic:

    **SchemaVersion:** v3.2
    **LoadTrigger:** ext:.py, file:pyproject.toml, kw:python
    ...
    ## Scope
    ## References
    ## Contract
    ## Anti-Patterns
"""

from __future__ import annotations

import hashlib
import re
from enum import StrEnum

from ruledex.rule_engine.models import (
    REQUIRED_SECTIONS,
    MetadataField,
    RuleDocument,
    Section,
    Trigger,
    TriggerKind,
)

_NUMBERED_PREFIX = re.compile(r"^\d+\.\s+")


class ParseError(Exception):
    """Raised when a rule document is structurally unreadable."""

    def __init__(self, rule_id: str, message: str) -> None:
        super().__init__(f"{rule_id}: {message}")
        self.rule_id = rule_id
        self.message = message


class LineKind(StrEnum):
    FENCE = "fence"
    HEADING = "heading"
    METADATA = "metadata"
    LIST_ITEM = "list_item"
    BLANK = "blank"
    TEXT = "text"


# Order matters: first match wins.
_GRAMMAR: list[tuple[LineKind, re.Pattern[str]]] = [
    (LineKind.FENCE, re.compile(r"^\s*(```|~~~)")),
    (LineKind.HEADING, re.compile(r"^(#{1,6})\s+(.*?)\s*#*\s*$")),
    (LineKind.METADATA, re.compile(r"^\*\*([A-Za-z][\w-]*)(?::\*\*|\*\*:)\s*(.*?)\s*$")),
    (LineKind.LIST_ITEM, re.compile(r"^\s*[-*+]\s+(.*)$")),
    (LineKind.BLANK, re.compile(r"^\s*$")),
]

_TRIGGER_PREFIXES = {kind.value: kind for kind in TriggerKind}


def classify(line: str) -> tuple[LineKind, re.Match[str] | None]:
    for kind, pattern in _GRAMMAR:
        m = pattern.match(line)
        if m:
            return kind, m
    return LineKind.TEXT, None


def parse_triggers(value: str, rule_id: str = "<unknown>") -> list[Trigger]:
    """Parse a LoadTrigger value such as ``ext:.py, kw:python``."""
    triggers: list[Trigger] = []
    for item in value.split(","):
        item = item.strip().strip("`").strip()
        if not item:
            continue
        prefix, sep, rest = item.partition(":")
        kind = _TRIGGER_PREFIXES.get(prefix.strip().lower())
        if not sep or kind is None:
            raise ParseError(rule_id, f"unrecognized LoadTrigger prefix in {item!r}")
        trigger = Trigger.create(kind, rest)
        if not trigger.value:
            raise ParseError(rule_id, f"empty LoadTrigger value in {item!r}")
        if trigger not in triggers:
            triggers.append(trigger)
    return triggers


def parse_rule(text: str, rule_id: str, path: str = "") -> RuleDocument:
    """Parse a rule document. Raises ParseError naming the violated rule."""
    metadata: list[MetadataField] = []
    sections: list[Section] = []
    title = ""
    in_fence = False
    metadata_done = False
    current: Section | None = None
    body_lines: list[str] = []

    def close_section() -> None:
        if current is not None:
            current.body = "\n".join(body_lines).strip("\n")
            sections.append(current)

    for lineno, line in enumerate(text.splitlines(), start=1):
        kind, m = classify(line)

        if kind == LineKind.FENCE:
            in_fence = not in_fence
        elif not in_fence and kind == LineKind.HEADING and m is not None:
            level = len(m.group(1))
            heading = m.group(2)
            if level == 1 and not title and current is None:
                title = heading
                continue
            if level == 2:
                metadata_done = True
                close_section()
                current = Section(
                    title=heading,
                    name=_NUMBERED_PREFIX.sub("", heading).strip(),
                    line=lineno,
                )
                body_lines = []
                continue
            if level == 3 and current is not None:
                current.subsections.append(heading)
        elif not in_fence and not metadata_done and current is None:
            if kind == LineKind.METADATA and m is not None:
                metadata.append(MetadataField(key=m.group(1), value=m.group(2), line=lineno))
                continue
            if kind == LineKind.BLANK:
                continue
            if metadata:
                # first non-metadata line ends the block
                metadata_done = True

        if current is not None:
            body_lines.append(line)

    if in_fence:
        raise ParseError(rule_id, "unterminated code fence")
    close_section()

    if not metadata:
        raise ParseError(rule_id, "missing metadata block")
    if not any(f.key == "SchemaVersion" for f in metadata):
        raise ParseError(rule_id, "missing required metadata field: SchemaVersion")

    names = {s.name for s in sections}
    for required in REQUIRED_SECTIONS:
        if required not in names:
            raise ParseError(rule_id, f"missing required section: {required}")

    triggers: list[Trigger] = []
    for f in metadata:
        if f.key == "LoadTrigger":
            triggers.extend(t for t in parse_triggers(f.value, rule_id) if t not in triggers)

    return RuleDocument(
        id=rule_id,
        path=path,
        title=title,
        metadata=metadata,
        sections=sections,
        triggers=triggers,
        body=text,
        content_hash=hashlib.sha256(text.encode()).hexdigest(),
    )
