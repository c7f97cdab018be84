"""
Abstract base for declarative rule engines (insights and actions).

Responsibilities:
    - Hold an ordered, immutable table of rules
    - Filter rules by the requesting UI section
    - Isolate failures: a rule that raises is logged and skipped, never fatal
    - Order the fired results by priority, keeping table order inside a tier
    - Truncate to the engine's cap

Subclasses only decide how one rule turns into an output item.

LLM Prompt Example:
    "Create an abstract rule engine that evaluates a static table of rules,
    logs and skips any rule that throws, then stable-sorts by priority."
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Generic, List, Optional, Protocol, Sequence, Tuple, TypeVar, Union

from linklens.models import Priority, Section

__all__ = ["PRIORITY_WEIGHT", "priority_weight", "BaseRuleEngine", "RuleLike"]

log = logging.getLogger("linklens.rules")

# Lower sorts first
PRIORITY_WEIGHT: Dict[Priority, int] = {
    Priority.HIGH: 0,
    Priority.MEDIUM: 1,
    Priority.LOW: 2,
}

T = TypeVar("T")


class RuleLike(Protocol):
    """What the engine needs from a rule; the rest is up to `materialize`."""

    @property
    def id(self) -> str: ...

    @property
    def priority(self) -> Priority: ...

    @property
    def applies_to(self) -> Tuple[Section, ...]: ...


def priority_weight(priority: Union[Priority, str]) -> int:
    return PRIORITY_WEIGHT[Priority(priority)]


class BaseRuleEngine(ABC, Generic[T]):
    """
    Evaluate a rule table for one section.

    Rules must expose `id`, `priority` and `applies_to` (a tuple of Section).
    """

    kind: str = "Rule"

    def __init__(self, rules: Sequence[RuleLike], max_total: int):
        self.rules: Tuple[RuleLike, ...] = tuple(rules)
        self.max_total = max_total

    @abstractmethod
    def materialize(self, rule: RuleLike, *args: Any) -> Optional[T]:  # pragma: no cover
        """
        Turn one applicable rule into an output item.

        Returns:
            The item, or None when the rule does not fire.
        """
        raise NotImplementedError

    def run(self, section: Union[Section, str], *args: Any, max_total: Optional[int] = None) -> List[T]:
        """
        Evaluate every rule that applies to `section`.

        Raises:
            ValueError: If `section` is not a known Section value.
        """
        section = Section(section)
        limit = self.max_total if max_total is None else max_total

        fired: List[Tuple[int, T]] = []
        for rule in self.rules:
            if section not in rule.applies_to:
                continue
            try:
                item = self.materialize(rule, *args)
            except Exception as exc:
                log.warning("%s %s failed: %s", self.kind, rule.id, exc)
                continue
            if item is not None:
                fired.append((priority_weight(rule.priority), item))

        # list.sort is stable: table order breaks ties
        fired.sort(key=lambda pair: pair[0])
        return [item for _, item in fired][:max(0, limit)]
