"""DependencyGraph: rule-to-rule edges from Depends, cycles, topological order."""

from __future__ import annotations

import heapq
from collections.abc import Iterable

from ruledex.rule_engine.models import CyclicDependency, DanglingDependency, RuleDocument

_WHITE, _GRAY, _BLACK = 0, 1, 2


class DependencyGraph:
    """Directed graph where an edge A -> B means rule A depends on rule B.

    Built once from a fixed corpus order; read-only afterwards.
    """

    def __init__(self, documents: Iterable[RuleDocument]) -> None:
        docs = list(documents)
        self._order: dict[str, int] = {}
        for doc in docs:
            self._order.setdefault(doc.id, len(self._order))
        self._edges: dict[str, list[str]] = {node: [] for node in self._order}
        self._reverse: dict[str, list[str]] = {node: [] for node in self._order}
        self.dangling: list[DanglingDependency] = []

        for doc in docs:
            targets = self._edges[doc.id]
            for target in doc.depends:
                if target not in self._order:
                    self.dangling.append(DanglingDependency(rule_id=doc.id, target=target))
                    continue
                if target not in targets:
                    targets.append(target)
                    self._reverse[target].append(doc.id)

        self.cycles: list[CyclicDependency] = self._find_cycles()

    @property
    def nodes(self) -> list[str]:
        return list(self._order)

    def __contains__(self, node: object) -> bool:
        return node in self._order

    def edges(self) -> list[tuple[str, str]]:
        return [(src, dst) for src, targets in self._edges.items() for dst in targets]

    def dependencies_of(self, node: str) -> list[str]:
        return list(self._edges.get(node, []))

    def dependents_of(self, node: str) -> list[str]:
        return list(self._reverse.get(node, []))

    def closure(self, nodes: Iterable[str]) -> set[str]:
        """Return the given nodes plus everything they transitively depend on."""
        seen: set[str] = set()
        stack = [n for n in nodes if n in self._order]
        while stack:
            node = stack.pop()
            if node in seen:
                continue
            seen.add(node)
            stack.extend(self._edges[node])
        return seen

    def cycles_touching(self, nodes: Iterable[str]) -> list[CyclicDependency]:
        wanted = set(nodes)
        return [c for c in self.cycles if wanted.intersection(c.path)]

    def topological_order(self, subset: Iterable[str] | None = None) -> list[str]:
        """Dependencies before dependents; ties broken by corpus order.

        Raises ValueError if the requested nodes contain a cycle.
        """
        selected = set(self._order) if subset is None else {n for n in subset if n in self._order}
        pending = {n: sum(1 for d in self._edges[n] if d in selected) for n in selected}
        ready = [(self._order[n], n) for n, count in pending.items() if count == 0]
        heapq.heapify(ready)

        result: list[str] = []
        while ready:
            _, node = heapq.heappop(ready)
            result.append(node)
            for dependent in self._reverse[node]:
                if dependent not in selected:
                    continue
                pending[dependent] -= 1
                if pending[dependent] == 0:
                    heapq.heappush(ready, (self._order[dependent], dependent))

        if len(result) != len(selected):
            stuck = sorted(selected - set(result), key=self._order.__getitem__)
            raise ValueError(f"dependency cycle among: {', '.join(stuck)}")
        return result

    def _find_cycles(self) -> list[CyclicDependency]:
        color = dict.fromkeys(self._order, _WHITE)
        stack: list[str] = []
        found: list[CyclicDependency] = []
        seen_keys: set[tuple[str, ...]] = set()

        def visit(node: str) -> None:
            color[node] = _GRAY
            stack.append(node)
            for target in self._edges[node]:
                if color[target] == _GRAY:
                    cycle = stack[stack.index(target) :] + [target]
                    key = _rotation_key(cycle[:-1])
                    if key not in seen_keys:
                        seen_keys.add(key)
                        found.append(CyclicDependency(path=cycle))
                elif color[target] == _WHITE:
                    visit(target)
            stack.pop()
            color[node] = _BLACK

        for node in self._order:
            if color[node] == _WHITE:
                visit(node)
        return found


def _rotation_key(cycle: list[str]) -> tuple[str, ...]:
    start = cycle.index(min(cycle))
    return tuple(cycle[start:] + cycle[:start])
