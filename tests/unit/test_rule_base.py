"""
Unit tests for linklens.analytics.base.BaseRuleEngine.

Uses a tiny probe engine with string outputs so the generic behaviour
(section filtering, failure isolation, stable priority sort, truncation)
is tested apart from the real rule tables.
"""

import logging
from dataclasses import dataclass
from typing import Callable, Tuple

import pytest

from linklens.analytics.base import PRIORITY_WEIGHT, BaseRuleEngine, priority_weight
from linklens.models import Priority, Section


@dataclass(frozen=True)
class _Rule:
    id: str
    priority: Priority
    applies_to: Tuple[Section, ...]
    fire: Callable[[int], bool]


class _ProbeEngine(BaseRuleEngine[str]):
    kind = "Probe rule"

    def materialize(self, rule, value):
        return rule.id if rule.fire(value) else None


def _boom(_):
    raise RuntimeError("boom")


ALL = tuple(Section)


def test_priority_weights():
    assert PRIORITY_WEIGHT[Priority.HIGH] < PRIORITY_WEIGHT[Priority.MEDIUM] < PRIORITY_WEIGHT[Priority.LOW]
    assert priority_weight("low") == 2


def test_stable_sort_keeps_table_order_within_priority():
    rules = [
        _Rule("low-1", Priority.LOW, ALL, lambda v: True),
        _Rule("med-1", Priority.MEDIUM, ALL, lambda v: True),
        _Rule("high-1", Priority.HIGH, ALL, lambda v: True),
        _Rule("med-2", Priority.MEDIUM, ALL, lambda v: True),
        _Rule("high-2", Priority.HIGH, ALL, lambda v: True),
    ]
    out = _ProbeEngine(rules, max_total=10).run(Section.DASHBOARD, 1)
    assert out == ["high-1", "high-2", "med-1", "med-2", "low-1"]


def test_section_filter_and_truncation():
    rules = [
        _Rule("doc-only", Priority.HIGH, (Section.FILE_DOC,), lambda v: True),
        _Rule("a", Priority.MEDIUM, ALL, lambda v: True),
        _Rule("b", Priority.MEDIUM, ALL, lambda v: True),
        _Rule("c", Priority.LOW, ALL, lambda v: True),
    ]
    engine = _ProbeEngine(rules, max_total=2)
    assert engine.run("track-site", 1) == ["a", "b"]
    assert engine.run(Section.FILE_DOC, 1) == ["doc-only", "a"]
    assert engine.run(Section.FILE_DOC, 1, max_total=0) == []


def test_failing_rule_is_logged_and_skipped(caplog):
    rules = [
        _Rule("before", Priority.LOW, ALL, lambda v: True),
        _Rule("broken", Priority.HIGH, ALL, _boom),
        _Rule("after", Priority.MEDIUM, ALL, lambda v: True),
    ]
    with caplog.at_level(logging.WARNING, logger="linklens.rules"):
        out = _ProbeEngine(rules, max_total=10).run(Section.DASHBOARD, 1)
    assert out == ["after", "before"]
    assert any("broken" in r.getMessage() for r in caplog.records)


def test_unknown_section_raises_value_error():
    with pytest.raises(ValueError):
        _ProbeEngine([], max_total=5).run("sidebar", 1)
