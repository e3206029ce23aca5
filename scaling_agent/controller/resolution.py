"""Merging of the decision layers of one reconcile cycle into a final decision."""

from __future__ import annotations

import copy
import dataclasses
import logging
from dataclasses import dataclass, field
from typing import Any

from scaling_agent.cost.estimator import CostEstimate, Estimator, WorkloadCost
from scaling_agent.decision.precedence import (
    PrecedenceInputs,
    PrecedenceResolver,
    ResolvedDecision,
)
from scaling_agent.decision.rollback import RollbackAction
from scaling_agent.decision.slo import SLOStatus, any_breached
from scaling_agent.decision.validator import ValidationResult
from scaling_agent.models import (
    Bundle,
    PrecedenceConfig,
    Scaler,
    ScalingDecision,
)

logger = logging.getLogger(__name__)


@dataclass
class ReconcileState:
    """Data carried between the steps of a single reconcile cycle."""

    obj: Scaler = field(default_factory=Scaler)
    bundle: Bundle | None = None
    decision: ScalingDecision | None = None
    llm_decision: ScalingDecision | None = None
    reactive_decision: ScalingDecision | None = None
    deterministic_decision: ScalingDecision | None = None
    slo_decision: ScalingDecision | None = None
    safety_decision: ScalingDecision | None = None
    human_decision: ScalingDecision | None = None
    provider: str = ""
    llm_provider: str = ""
    safety_source: str = ""
    validation: ValidationResult | None = None
    phase: str = ""
    precedence: ResolvedDecision | None = None
    rollback_action: RollbackAction | None = None
    current_slos: list[SLOStatus] = field(default_factory=list)
    coordination_slot_held: bool = False
    coordination_workload: str = ""

    current_workload_cost: WorkloadCost | None = None
    cost_estimate: CostEstimate | None = None
    cost_ceiling: int | None = None
    cost_reason: str = ""
    node_ctx: Any = None
    current_resources: Any = None
    vertical_decision: Any = None
    vertical_context: str = ""
    feedback_context: str = ""
    feedback_status: Any = None
    vertical_apply_result: Any = None
    decision_id: str = ""
    predicted_cpu: float = 0.0
    cpu_confidence: float = 0.0
    predicted_queue_depth: float = 0.0
    queue_confidence: float = 0.0


@dataclass
class PrecedenceConflict:
    """A layer whose wish was overridden, with the explanation."""

    layer: str
    message: str


@dataclass
class ActiveOverride:
    """A non-model layer that shaped the final decision."""

    layer: str


@dataclass
class PrecedenceStatus:
    """Summary of a precedence resolution for the policy status."""

    resolved_replicas: int = 0
    conflicts: list[PrecedenceConflict] = field(default_factory=list)
    active_overrides: list[ActiveOverride] = field(default_factory=list)


def action_type_for_target(target: int, current: int) -> str:
    """Return "scale_up", "scale_down" or "no_change"."""
    if target > current:
        return "scale_up"
    if target < current:
        return "scale_down"
    return "no_change"


def should_skip_llm_for_reactive_rules(config: PrecedenceConfig | None) -> bool:
    """Reactive rules skip the model unless the config says the model ranks higher."""
    if config is None:
        return True
    return config.reactive_rules_override_llm


def coordination_workload_name(policy: Scaler | None) -> str:
    """Target workload name, falling back to the policy name."""
    if policy is None:
        return ""
    return policy.spec.target_ref.name or policy.name


def applied_layer_reason(resolved: ResolvedDecision | None, layer_name: str) -> str:
    """Reason recorded by the first audit entry of the named layer."""
    if resolved is None:
        return ""
    return next((entry.reason for entry in resolved.layers if entry.layer == layer_name), "")


def _clone(decision: ScalingDecision) -> ScalingDecision:
    return dataclasses.replace(
        decision,
        reason_codes=list(decision.reason_codes) if decision.reason_codes is not None else None,
        vertical_changes=copy.copy(decision.vertical_changes),
    )


def build_slo_decision(state: ReconcileState) -> ScalingDecision | None:
    """Hold at least the current replicas (or any higher wish) while an SLO is breached."""
    if state.bundle is None or not state.current_slos or not any_breached(state.current_slos):
        return None

    current = state.bundle.current_replicas
    candidates = (state.reactive_decision, state.llm_decision, state.deterministic_decision)
    target = max(
        [current, *(c.target_replicas for c in candidates if c is not None)]
    )
    return ScalingDecision(
        target_replicas=target,
        reasoning="SLO breach prevents scale-down while objectives are violated",
        confidence=1.0,
        action_type=action_type_for_target(target, current),
    )


def build_precedence_inputs(
    state: ReconcileState, include_human: bool, include_cost: bool
) -> PrecedenceInputs:
    """Collect every layer's target from the state into resolver inputs."""
    constraints = state.obj.spec.constraints
    inputs = PrecedenceInputs(
        min_replicas=constraints.min_replicas,
        max_replicas=constraints.max_replicas,
    )

    prec = state.obj.spec.precedence
    if prec is not None:
        inputs.schedule_overrides_llm = prec.schedule_overrides_llm
        inputs.reactive_rules_override_llm = prec.reactive_rules_override_llm
        inputs.slo_always_wins = prec.slo_always_wins
    if state.safety_decision is not None:
        inputs.safety_override = state.safety_decision.target_replicas
        inputs.safety_reason = state.safety_decision.reasoning
    if include_human and state.human_decision is not None:
        inputs.human_override = state.human_decision.target_replicas
        inputs.human_reason = state.human_decision.reasoning
    if state.slo_decision is not None:
        inputs.slo_target = state.slo_decision.target_replicas
        inputs.slo_reason = state.slo_decision.reasoning
    if state.reactive_decision is not None:
        inputs.reactive_target = state.reactive_decision.target_replicas
        inputs.reactive_reason = state.reactive_decision.reasoning
    if state.llm_decision is not None:
        inputs.llm_target = state.llm_decision.target_replicas
        inputs.llm_reason = state.llm_decision.reasoning
        inputs.llm_confidence = state.llm_decision.confidence
    if state.deterministic_decision is not None:
        inputs.deterministic_target = state.deterministic_decision.target_replicas
        inputs.deterministic_reason = state.deterministic_decision.reasoning
    if include_cost and state.cost_ceiling is not None:
        inputs.cost_constrained_max = state.cost_ceiling
        inputs.cost_reason = state.cost_reason
    return inputs


def decision_for_layer(
    state: ReconcileState, layer: str
) -> tuple[ScalingDecision | None, str]:
    """The decision behind a layer and the provider name it is reported under."""
    if layer == "safety":
        if state.safety_decision is not None:
            return state.safety_decision, state.safety_source or "safety"
    elif layer == "human":
        return state.human_decision, "approval-hold"
    elif layer == "slo":
        return state.slo_decision, "slo"
    elif layer == "reactive":
        return state.reactive_decision, "reactive-rule"
    elif layer == "llm":
        return state.llm_decision, state.llm_provider
    elif layer == "deterministic":
        return state.deterministic_decision, "keda"
    return None, ""


def materialize_resolved_decision(
    state: ReconcileState, resolved: ResolvedDecision | None
) -> tuple[ScalingDecision, str]:
    """Turn a resolution into a concrete decision and its provider name."""
    current = state.bundle.current_replicas if state.bundle is not None else 0
    if resolved is None:
        return (
            ScalingDecision(
                target_replicas=current,
                reasoning="no resolved decision; maintaining current replicas",
                confidence=1.0,
                action_type="no_change",
            ),
            "fallback",
        )

    base_layer = ""
    cost_applied = False
    cost_reason = ""
    for entry in resolved.layers:
        if not entry.applied:
            continue
        if entry.layer == "cost":
            cost_applied = True
            cost_reason = entry.reason
        elif not base_layer:
            base_layer = entry.layer

    base, provider = decision_for_layer(state, base_layer)
    if base is None:
        base = ScalingDecision(
            target_replicas=resolved.target_replicas,
            reasoning="resolved scaling decision",
            confidence=1.0,
        )

    final = _clone(base)
    final.target_replicas = resolved.target_replicas
    final.action_type = action_type_for_target(resolved.target_replicas, current)
    if not final.reasoning:
        final.reasoning = applied_layer_reason(resolved, base_layer)
    if cost_applied:
        if not final.reasoning:
            final.reasoning = cost_reason
        elif cost_reason:
            final.reasoning = f"{final.reasoning}; {cost_reason}"
        provider = "cost-override"
    return final, provider or "precedence"


def build_precedence_status(resolved: ResolvedDecision | None) -> PrecedenceStatus | None:
    """Summarise conflicts and the non-model layers that took effect."""
    if resolved is None:
        return None
    status = PrecedenceStatus(resolved_replicas=resolved.target_replicas)
    for conflict in resolved.conflicts:
        layer, sep, message = conflict.partition(": ")
        if not sep:
            layer = message = conflict
        status.conflicts.append(PrecedenceConflict(layer=layer, message=message))
    status.active_overrides = [
        ActiveOverride(layer=entry.layer)
        for entry in resolved.layers
        if entry.applied and entry.layer != "llm"
    ]
    return status


def resolve_decision_state(
    state: ReconcileState,
    resolver: PrecedenceResolver | None,
    estimator: Estimator | None,
    include_human: bool,
    include_cost: bool,
) -> None:
    """Resolve the layers into ``state.decision`` and ``state.provider``.

    Raises ValueError if the final cost estimate cannot be recalculated.
    """
    if state.bundle is None:
        return

    state.slo_decision = build_slo_decision(state)

    layers = (
        state.safety_decision,
        state.human_decision,
        state.reactive_decision,
        state.llm_decision,
        state.deterministic_decision,
        state.slo_decision,
    )
    if all(layer is None for layer in layers):
        state.decision = ScalingDecision(
            target_replicas=state.bundle.current_replicas,
            reasoning="no applicable scaling inputs; maintaining current replicas",
            confidence=1.0,
            action_type="no_change",
        )
        state.provider = "fallback"
        state.precedence = None
        return

    resolver = resolver or PrecedenceResolver()
    resolved = resolver.resolve(build_precedence_inputs(state, include_human, include_cost))
    state.precedence = resolved
    state.decision, state.provider = materialize_resolved_decision(state, resolved)

    if include_cost and state.current_workload_cost is not None and estimator is not None:
        try:
            state.cost_estimate = estimator.estimate(
                state.current_workload_cost,
                state.bundle.current_replicas,
                state.decision.target_replicas,
            )
        except ValueError as exc:
            raise ValueError(f"recalculate final cost estimate: {exc}") from exc

    prec = state.obj.spec.precedence
    if prec is not None and prec.log_conflicts and resolved.conflicts:
        logger.info("precedence conflicts resolved: %s", "; ".join(resolved.conflicts))