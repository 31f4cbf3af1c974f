"""
Registry of cleanup rules.
"""

from typing import Dict, Iterable, List

import structlog

from ..exceptions import RuleNotFoundError
from .models import CleanupRule

logger = structlog.get_logger(__name__)


class RuleRegistry:
    """Unique-by-name collection of cleanup rules. Rules are never removed."""

    def __init__(self):
        self._rules: Dict[str, CleanupRule] = {}

    def register(self, rule: CleanupRule) -> None:
        if rule.name in self._rules:
            raise ValueError(f"Cleanup rule already registered: {rule.name}")
        self._rules[rule.name] = rule

    def get(self, name: str) -> CleanupRule:
        rule = self._rules.get(name)
        if rule is None:
            raise RuleNotFoundError(name)
        return rule

    def __contains__(self, name: str) -> bool:
        return name in self._rules

    def __len__(self) -> int:
        return len(self._rules)

    def names(self) -> List[str]:
        return list(self._rules)

    def rules(self) -> List[CleanupRule]:
        return list(self._rules.values())

    def ordered(self, names: Iterable[str]) -> List[CleanupRule]:
        """
        Resolve names to rules sorted by priority tier.

        Within a tier the requested order is kept. Unknown names are logged and
        dropped; repeated names run once.
        """
        selected = []
        seen = set()
        for name in names:
            if name in seen:
                continue
            seen.add(name)
            rule = self._rules.get(name)
            if rule is None:
                logger.warning("Cleanup rule not found, skipping", rule=name)
                continue
            selected.append(rule)
        # sorted() is stable, so request order survives inside a tier
        return sorted(selected, key=lambda r: r.priority.rank)
