from __future__ import annotations

from typing import Dict, Iterable, Iterator, Optional, Tuple

from .errors import InvalidRuleDefinition
from .rule import Rule


class RuleSet:
    """Read-only, priority-ordered collection of rules.

    Built once by the caller and handed to each computation; nothing mutates it afterwards,
    so a single instance can be shared across threads.
    """

    def __init__(self, rules: Iterable[Rule] = ()):
        indexed = list(enumerate(rules))
        by_id: Dict[str, Rule] = {}
        for _, rule in indexed:
            if rule.id in by_id:
                raise InvalidRuleDefinition(f"Duplicate rule id: {rule.id}")
            by_id[rule.id] = rule
        # Stable sort: equal priorities keep their input order.
        indexed.sort(key=lambda item: (item[1].priority, item[0]))
        self._rules: Tuple[Rule, ...] = tuple(rule for _, rule in indexed)
        self._by_id = by_id

    @classmethod
    def coerce(cls, rules: "Iterable[Rule] | RuleSet") -> "RuleSet":
        if isinstance(rules, RuleSet):
            return rules
        return cls(rules)

    def __iter__(self) -> Iterator[Rule]:
        return iter(self._rules)

    def __len__(self) -> int:
        return len(self._rules)

    def __contains__(self, rule_id: object) -> bool:
        return rule_id in self._by_id

    def get(self, rule_id: str) -> Rule:
        return self._by_id[rule_id]

    def find(self, rule_id: str) -> Optional[Rule]:
        return self._by_id.get(rule_id)

    def ids(self) -> Tuple[str, ...]:
        return tuple(rule.id for rule in self._rules)

    def ordered(self) -> Tuple[Rule, ...]:
        return self._rules
