"""Default keyword extractor handed to the resolver by the CLI and HTTP layer.

The resolver itself only consumes a keyword set; callers may supply any
``extract(text) -> set[str]`` function instead of this one.
"""

from __future__ import annotations

import re
from collections.abc import Iterable

from ruledex.rule_engine.models import TriggerKind
from ruledex.rule_engine.triggers import TriggerIndex

_TOKEN = re.compile(r"[a-z0-9][a-z0-9+#._-]*")


def extract_keywords(text: str, vocabulary: Iterable[str]) -> set[str]:
    """Return vocabulary entries that occur in text as whole tokens or phrases."""
    lowered = text.lower()
    tokens = {t.strip("._-") for t in _TOKEN.findall(lowered)}
    found: set[str] = set()
    for word in vocabulary:
        word = word.lower().strip()
        if not word:
            continue
        if " " in word:
            if re.search(rf"(?<![a-z0-9]){re.escape(word)}(?![a-z0-9])", lowered):
                found.add(word)
        elif word in tokens:
            found.add(word)
    return found


def keyword_vocabulary(index: TriggerIndex) -> set[str]:
    return {t.value for t in index.triggers() if t.kind == TriggerKind.KEYWORD}
