"""Resolver: request context -> ordered, deduplicated load plan."""

from __future__ import annotations

from ruledex.rule_engine.index import RuleRegistry
from ruledex.rule_engine.models import CyclicDependency, LoadPlan, RequestContext


class UnresolvableLoadPlan(Exception):
    """Raised when no correct load order exists for the candidate rules."""

    def __init__(self, reason: str, cycle: CyclicDependency | None = None) -> None:
        super().__init__(reason)
        self.cycle = cycle


class Resolver:
    def __init__(self, registry: RuleRegistry) -> None:
        self._registry = registry

    def resolve(self, context: RequestContext) -> LoadPlan:
        """Foundation first, then matched rules and their dependencies in topological order.

        Raises UnresolvableLoadPlan rather than returning an order that could
        apply rules out of precedence.
        """
        registry = self._registry
        graph = registry.graph
        foundation = registry.foundation
        has_foundation = foundation in registry

        if has_foundation and graph.dependencies_of(foundation):
            # the foundation must load first, so it cannot depend on other rules
            raise UnresolvableLoadPlan(
                f"foundation rule {foundation} depends on "
                f"{', '.join(graph.dependencies_of(foundation))}"
            )

        matched = registry.trigger_index.matches(context.triggers())
        roots = list(matched)
        if has_foundation:
            roots.append(foundation)
        candidates = graph.closure(roots)

        touching = graph.cycles_touching(candidates)
        if touching:
            raise UnresolvableLoadPlan(f"dependency cycle: {touching[0]}", cycle=touching[0])

        ordered = graph.topological_order(candidates)
        rules = [foundation] if has_foundation else []
        for rule_id in ordered:
            if rule_id not in rules:
                rules.append(rule_id)

        budget = 0
        for rule_id in rules:
            doc = registry.get(rule_id)
            if doc is not None:
                budget += doc.token_budget
        return LoadPlan(rules=rules, matched=matched, token_budget=budget)


def resolve(registry: RuleRegistry, context: RequestContext) -> LoadPlan:
    return Resolver(registry).resolve(context)
