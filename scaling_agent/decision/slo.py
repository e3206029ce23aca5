"""Evaluation of service level objectives against collected signals."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

from scaling_agent.models import SLO, Bundle


@dataclass
class SLOStatus:
    """Result of evaluating one SLO; a negative margin means breached."""

    name: str = ""
    metric: str = ""
    target: float = 0.0
    actual: float = 0.0
    breached: bool = False
    margin: float = 0.0
    priority: int = 0


def compute_margin(metric: str, target: float, actual: float) -> float:
    """Percentage margin from target; higher is better only for availability."""
    if target == 0:
        return 100.0 if actual == 0 else -100.0
    if metric == "availability":
        return (actual - target) / target * 100
    return (target - actual) / target * 100


def evaluate_slos(slos: Iterable[SLO], bundle: Bundle) -> list[SLOStatus]:
    """Check each SLO against the bundle's current values."""
    statuses = []
    for slo in slos:
        actual = bundle.metric(slo.metric)
        margin = compute_margin(slo.metric, slo.target, actual)
        statuses.append(
            SLOStatus(
                name=slo.name,
                metric=slo.metric,
                target=slo.target,
                actual=actual,
                breached=margin < 0,
                margin=margin,
                priority=slo.priority,
            )
        )
    return statuses


def any_breached(statuses: Iterable[SLOStatus]) -> bool:
    """True if any SLO is breached."""
    return any(status.breached for status in statuses)


def format_slo_context(statuses: Iterable[SLOStatus] | None) -> str:
    """Render SLO statuses as a prompt block; empty if there are none."""
    statuses = list(statuses or ())
    if not statuses:
        return ""
    parts = ["SLO Status:\n"]
    for s in statuses:
        state = "BREACHED" if s.breached else "OK"
        parts.append(
            f"  - {s.name} ({s.metric}): target={s.target:.2f} actual={s.actual:.2f} "
            f"[{state}] margin={s.margin:.1f}%\n"
        )
    parts.append("\nPrioritize keeping SLOs within target. If any SLO is breached, scale up.")
    return "".join(parts)