"""Rule engine: parse, validate, index and resolve markdown rule documents."""

from ruledex.rule_engine.config import RulesConfig, load_rules_config
from ruledex.rule_engine.graph import DependencyGraph
from ruledex.rule_engine.index import RuleRegistry, RulesIndex, build_registry, iter_rule_sources
from ruledex.rule_engine.models import (
    CyclicDependency,
    DanglingDependency,
    FileReport,
    LoadPlan,
    RequestContext,
    RuleDocument,
    Severity,
    Trigger,
    TriggerKind,
    ValidationFinding,
)
from ruledex.rule_engine.parser import ParseError, parse_rule
from ruledex.rule_engine.resolver import Resolver, UnresolvableLoadPlan, resolve
from ruledex.rule_engine.triggers import TriggerIndex
from ruledex.rule_engine.validator import validate_rule

__all__ = [
    "CyclicDependency",
    "DanglingDependency",
    "DependencyGraph",
    "FileReport",
    "LoadPlan",
    "ParseError",
    "RequestContext",
    "Resolver",
    "RuleDocument",
    "RuleRegistry",
    "RulesConfig",
    "RulesIndex",
    "Severity",
    "Trigger",
    "TriggerIndex",
    "TriggerKind",
    "UnresolvableLoadPlan",
    "ValidationFinding",
    "build_registry",
    "iter_rule_sources",
    "load_rules_config",
    "parse_rule",
    "resolve",
    "validate_rule",
]
