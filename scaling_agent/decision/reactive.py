"""Threshold rules that short-circuit the model with a fixed replica action."""

from __future__ import annotations

import operator
from collections.abc import Iterable
from dataclasses import dataclass, field

from scaling_agent.models import Bundle, ReactiveRule

_COMPARISONS = {
    ">": operator.gt,
    ">=": operator.ge,
    "<": operator.lt,
    "<=": operator.le,
    "==": operator.eq,
    "!=": operator.ne,
}


@dataclass
class ReactiveResult:
    """The rule that fired, the metric value it saw and the replicas it asks for."""

    fired: bool = False
    rule: ReactiveRule = field(default_factory=ReactiveRule)
    actual: float = 0.0
    replicas: int = 0


def eval_condition(actual: float, op: str, threshold: float) -> bool:
    """Evaluate ``actual <op> threshold``; an unknown operator never matches."""
    compare = _COMPARISONS.get(op)
    return compare is not None and compare(actual, threshold)


def compute_reactive_replicas(rule: ReactiveRule, current: int) -> int:
    """Apply the rule's action to the current replica count."""
    if rule.action == "scale_up":
        return current + rule.amount
    if rule.action == "scale_down":
        return max(current - rule.amount, 1)
    if rule.action == "set":
        return rule.amount
    return current


def evaluate_reactive_rules(
    rules: Iterable[ReactiveRule] | None, bundle: Bundle
) -> ReactiveResult | None:
    """Return the first rule whose condition holds, or None if none fires."""
    for rule in rules or ():
        actual = bundle.metric(rule.metric)
        if eval_condition(actual, rule.operator, rule.threshold):
            return ReactiveResult(
                fired=True,
                rule=rule,
                actual=actual,
                replicas=compute_reactive_replicas(rule, bundle.current_replicas),
            )
    return None