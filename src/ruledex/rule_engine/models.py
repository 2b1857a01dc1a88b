"""Pydantic models and enums for the rule engine layer."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from pathlib import PurePosixPath

from pydantic import BaseModel, Field

# Canonical metadata order; LastUpdated and LoadTrigger are optional.
METADATA_ORDER: tuple[str, ...] = (
    "SchemaVersion",
    "RuleVersion",
    "LastUpdated",
    "LoadTrigger",
    "Keywords",
    "TokenBudget",
    "ContextTier",
    "Depends",
)

REQUIRED_SECTIONS: tuple[str, ...] = ("Scope", "References", "Contract")
SECTION_ORDER: tuple[str, ...] = REQUIRED_SECTIONS + ("Anti-Patterns",)

_NO_DEPENDENCY = {"", "none", "-", "n/a"}


def _normalize_dir(value: str) -> str:
    """`./src/`, `/src` and `src\\` all become `src`."""
    parts = [p for p in value.replace("\\", "/").split("/") if p not in ("", ".")]
    return "/".join(parts)


class ContextTier(StrEnum):
    CRITICAL = "Critical"
    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"


class Severity(StrEnum):
    CRITICAL = "Critical"
    HIGH = "High"
    MEDIUM = "Medium"
    INFO = "Info"


class TriggerKind(StrEnum):
    EXTENSION = "ext"
    FILENAME = "file"
    DIRECTORY = "dir"
    KEYWORD = "kw"


@dataclass(frozen=True)
class Trigger:
    """A matching condition that makes a rule a load candidate."""

    kind: TriggerKind
    value: str

    @classmethod
    def create(cls, kind: TriggerKind, value: str) -> Trigger:
        """Build a trigger with its value normalised for exact-key lookup."""
        value = value.strip()
        if kind == TriggerKind.EXTENSION:
            value = value.lower()
            if value and not value.startswith("."):
                value = "." + value
        elif kind == TriggerKind.KEYWORD:
            value = value.lower()
        elif kind == TriggerKind.DIRECTORY:
            value = _normalize_dir(value)
        return cls(kind=kind, value=value)

    def __str__(self) -> str:
        return f"{self.kind}:{self.value}"


class MetadataField(BaseModel):
    key: str
    value: str
    line: int = 0


class Section(BaseModel):
    title: str  # heading text as written
    name: str  # title with any "N. " numbering stripped
    body: str = ""
    line: int = 0
    subsections: list[str] = Field(default_factory=list)


def normalize_rule_ref(ref: str) -> str:
    """Turn a Depends entry into a rule identifier ("rules/foo" -> "foo.md")."""
    ref = ref.strip().strip("`").strip()
    if not ref:
        return ""
    ref = ref.split()[0]
    name = PurePosixPath(ref.replace("\\", "/")).name
    if not name.endswith(".md"):
        name += ".md"
    return name


class RuleDocument(BaseModel):
    id: str
    path: str = ""
    title: str = ""
    metadata: list[MetadataField] = Field(default_factory=list)
    sections: list[Section] = Field(default_factory=list)
    triggers: list[Trigger] = Field(default_factory=list)
    body: str = ""
    content_hash: str = ""

    def get(self, key: str) -> str | None:
        """Return the first value recorded for a metadata key."""
        for item in self.metadata:
            if item.key == key:
                return item.value
        return None

    def has(self, key: str) -> bool:
        return any(item.key == key for item in self.metadata)

    @property
    def metadata_keys(self) -> list[str]:
        return [item.key for item in self.metadata]

    @property
    def section_names(self) -> list[str]:
        return [s.name for s in self.sections]

    def section(self, name: str) -> Section | None:
        return next((s for s in self.sections if s.name == name), None)

    @property
    def keywords(self) -> list[str]:
        return _split_csv(self.get("Keywords") or "")

    @property
    def depends(self) -> list[str]:
        result: list[str] = []
        for part in _split_csv(self.get("Depends") or ""):
            if part.lower() in _NO_DEPENDENCY:
                continue
            ref = normalize_rule_ref(part)
            if ref and ref not in result:
                result.append(ref)
        return result

    @property
    def token_budget(self) -> int:
        """Declared budget as an integer, 0 when absent or malformed."""
        raw = (self.get("TokenBudget") or "").strip().lstrip("~").replace(",", "")
        return int(raw) if raw.isdigit() else 0


class ValidationFinding(BaseModel):
    """A severity-graded schema finding for one rule file."""

    rule_id: str
    severity: Severity
    check: str
    message: str


class DanglingDependency(BaseModel):
    rule_id: str
    target: str


class CyclicDependency(BaseModel):
    path: list[str]  # path[0] == path[-1]

    def __str__(self) -> str:
        return " -> ".join(self.path)


class FileReport(BaseModel):
    """Validation outcome for one rule file."""

    rule_id: str
    path: str = ""
    parse_error: str | None = None
    findings: list[ValidationFinding] = Field(default_factory=list)

    def count(self, severity: Severity) -> int:
        return sum(1 for f in self.findings if f.severity == severity)

    @property
    def passed(self) -> bool:
        return self.parse_error is None and self.count(Severity.CRITICAL) == 0


class RequestContext(BaseModel):
    """What the calling agent touched, plus keywords it extracted."""

    extensions: set[str] = Field(default_factory=set)
    filenames: set[str] = Field(default_factory=set)
    directories: set[str] = Field(default_factory=set)
    keywords: set[str] = Field(default_factory=set)

    @classmethod
    def from_paths(cls, paths: list[str], keywords: set[str] | None = None) -> RequestContext:
        ctx = cls(keywords=set(keywords or ()))
        for raw in paths:
            p = PurePosixPath(raw.replace("\\", "/"))
            if p.suffix:
                ctx.extensions.add(p.suffix)
            if p.name:
                ctx.filenames.add(p.name)
            parent = str(p.parent)
            if parent not in (".", "/", ""):
                ctx.directories.add(parent)
        return ctx

    def triggers(self) -> set[Trigger]:
        result: set[Trigger] = set()
        for ext in self.extensions:
            result.add(Trigger.create(TriggerKind.EXTENSION, ext))
        for name in self.filenames:
            result.add(Trigger.create(TriggerKind.FILENAME, PurePosixPath(name).name))
        for directory in self.directories:
            parts = _normalize_dir(directory).split("/")
            # a rule scoped to "src" also covers "src/api"
            for i in range(1, len(parts) + 1):
                result.add(Trigger.create(TriggerKind.DIRECTORY, "/".join(parts[:i])))
        for kw in self.keywords:
            result.add(Trigger.create(TriggerKind.KEYWORD, kw))
        return {t for t in result if t.value}


class LoadPlan(BaseModel):
    rules: list[str] = Field(default_factory=list)
    matched: dict[str, list[str]] = Field(default_factory=dict)  # rule id -> trigger strings
    token_budget: int = 0

    def render(self, foundation: str | None = None) -> str:
        """Render the "Rules Loaded" declaration shown to the agent."""
        lines = ["Rules Loaded:"]
        for rule_id in self.rules:
            if rule_id == foundation:
                reason = "foundation"
            elif rule_id in self.matched:
                reason = ", ".join(self.matched[rule_id])
            else:
                reason = "dependency"
            lines.append(f"- {rule_id} ({reason})")
        if self.token_budget:
            lines.append(f"Token budget: ~{self.token_budget}")
        return "\n".join(lines)


def _split_csv(value: str) -> list[str]:
    """Parse comma-separated string into list, filtering empty entries."""
    if not value:
        return []
    return [v.strip() for v in value.split(",") if v.strip()]
