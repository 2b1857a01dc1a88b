"""TriggerIndex: trigger -> owning rule ids, across the whole corpus."""

from __future__ import annotations

from collections.abc import Iterable

from ruledex.rule_engine.models import RuleDocument, Trigger


class TriggerIndex:
    """Built in a single pass; owner lists keep insertion order.

    The index stores whatever triggers the documents declare. Whether a rule
    (such as the foundation) may declare triggers is left to validation.
    """

    def __init__(self, documents: Iterable[RuleDocument]) -> None:
        self._owners: dict[Trigger, list[str]] = {}
        self._rank: dict[str, int] = {}
        for doc in documents:
            self._rank.setdefault(doc.id, len(self._rank))
            for trigger in doc.triggers:
                owners = self._owners.setdefault(trigger, [])
                if doc.id not in owners:
                    owners.append(doc.id)

    def __len__(self) -> int:
        return len(self._owners)

    def owners(self, trigger: Trigger) -> list[str]:
        return list(self._owners.get(trigger, []))

    def triggers(self) -> list[Trigger]:
        return list(self._owners)

    def lookup(self, triggers: Iterable[Trigger]) -> list[str]:
        """Union of owners for the given triggers, in corpus order. Empty in, empty out."""
        found: set[str] = set()
        for trigger in triggers:
            found.update(self._owners.get(trigger, ()))
        return sorted(found, key=self._rank.__getitem__)

    def matches(self, triggers: Iterable[Trigger]) -> dict[str, list[str]]:
        """Map each matched rule id to the trigger strings that selected it."""
        result: dict[str, list[str]] = {}
        for trigger in sorted(set(triggers), key=str):
            for owner in self._owners.get(trigger, ()):
                result.setdefault(owner, []).append(str(trigger))
        return {k: result[k] for k in sorted(result, key=self._rank.__getitem__)}

    def as_dict(self) -> dict[str, list[str]]:
        return {str(t): list(owners) for t, owners in self._owners.items()}
