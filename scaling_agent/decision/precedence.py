"""Resolution of competing scaling targets by a fixed layer hierarchy."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class PrecedenceInputs:
    """Targets from every decision layer; None means the layer is silent."""

    safety_override: int | None = None
    safety_reason: str = ""
    human_override: int | None = None
    human_reason: str = ""
    schedule_target: int | None = None
    schedule_reason: str = ""
    slo_target: int | None = None
    slo_reason: str = ""
    reactive_target: int | None = None
    reactive_reason: str = ""
    llm_target: int | None = None
    llm_reason: str = ""
    llm_confidence: float = 0.0
    deterministic_target: int | None = None
    deterministic_reason: str = ""
    cost_constrained_max: int | None = None
    cost_reason: str = ""
    min_replicas: int = 0
    max_replicas: int = 0
    # None keeps the default ordering (the layer ranks above the LLM).
    schedule_overrides_llm: bool | None = None
    reactive_rules_override_llm: bool | None = None
    slo_always_wins: bool | None = None


@dataclass
class AuditEntry:
    """How one layer took part in the resolution."""

    layer: str
    target: int
    reason: str = ""
    applied: bool = False


@dataclass
class ResolvedDecision:
    """Final target with the audit trail of contributing layers."""

    target_replicas: int = 0
    layers: list[AuditEntry] = field(default_factory=list)
    conflicts: list[str] = field(default_factory=list)


def _flag(value: bool | None, default: bool = True) -> bool:
    return default if value is None else value


class PrecedenceResolver:
    """Picks the highest-priority layer's target, then caps and bounds it.

    Default order: safety, human, schedule, SLO, reactive, LLM,
    deterministic; cost acts as a ceiling afterwards.
    """

    def resolve(self, inputs: PrecedenceInputs) -> ResolvedDecision:
        schedule_first = _flag(inputs.schedule_overrides_llm)
        reactive_first = _flag(inputs.reactive_rules_override_llm)
        slo_first = _flag(inputs.slo_always_wins)

        schedule = ("schedule", inputs.schedule_target, inputs.schedule_reason)
        slo = ("slo", inputs.slo_target, inputs.slo_reason)
        reactive = ("reactive", inputs.reactive_target, inputs.reactive_reason)

        layers = [
            ("safety", inputs.safety_override, inputs.safety_reason),
            ("human", inputs.human_override, inputs.human_reason),
        ]
        if schedule_first:
            layers.append(schedule)
        if slo_first:
            layers.append(slo)
        if reactive_first:
            layers.append(reactive)
        layers.append(("llm", inputs.llm_target, inputs.llm_reason))
        if not reactive_first:
            layers.append(reactive)
        if not slo_first:
            layers.append(slo)
        if not schedule_first:
            layers.append(schedule)
        layers.append(("deterministic", inputs.deterministic_target, inputs.deterministic_reason))

        resolved = ResolvedDecision()
        winner: tuple[str, int] | None = None
        for name, target, reason in layers:
            if target is None:
                continue
            applied = winner is None
            if applied:
                winner = (name, target)
            elif target != winner[1]:
                resolved.conflicts.append(f"{name}: wanted {target} but overridden by {winner[0]}")
            resolved.layers.append(AuditEntry(layer=name, target=target, reason=reason, applied=applied))

        if winner is not None:
            resolved.target_replicas = winner[1]

        ceiling = inputs.cost_constrained_max
        if ceiling is not None and resolved.target_replicas > ceiling:
            resolved.conflicts.append("cost: capped from target to budget max")
            resolved.target_replicas = ceiling
            resolved.layers.append(
                AuditEntry(layer="cost", target=ceiling, reason=inputs.cost_reason, applied=True)
            )

        if resolved.target_replicas < inputs.min_replicas:
            resolved.target_replicas = inputs.min_replicas
        if inputs.max_replicas > 0 and resolved.target_replicas > inputs.max_replicas:
            resolved.target_replicas = inputs.max_replicas

        return resolved