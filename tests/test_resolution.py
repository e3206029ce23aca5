import pytest

from scaling_agent.controller.resolution import (
    ActiveOverride,
    PrecedenceConflict,
    ReconcileState,
    action_type_for_target,
    applied_layer_reason,
    build_precedence_inputs,
    build_precedence_status,
    build_slo_decision,
    coordination_workload_name,
    decision_for_layer,
    materialize_resolved_decision,
    resolve_decision_state,
    should_skip_llm_for_reactive_rules,
)
from scaling_agent.cost.estimator import Estimator, WorkloadCost
from scaling_agent.decision.precedence import AuditEntry, PrecedenceResolver, ResolvedDecision
from scaling_agent.decision.slo import SLOStatus
from scaling_agent.models import (
    CostConstraints,
    PrecedenceConfig,
    Scaler,
    ScalerSpec,
    ScalingConstraints,
    ScalingDecision,
    TargetRef,
    Bundle,
)


def _policy(min_r=1, max_r=20, **spec):
    return Scaler(
        spec=ScalerSpec(
            constraints=ScalingConstraints(min_replicas=min_r, max_replicas=max_r), **spec
        )
    )


def test_resolve_honors_reactive_precedence_config():
    state = ReconcileState(
        obj=_policy(precedence=PrecedenceConfig(reactive_rules_override_llm=False)),
        bundle=Bundle(current_replicas=5),
        reactive_decision=ScalingDecision(target_replicas=10, reasoning="reactive rule", confidence=1.0),
        llm_decision=ScalingDecision(target_replicas=6, reasoning="llm target", confidence=0.8),
        llm_provider="anthropic",
    )
    resolve_decision_state(state, PrecedenceResolver(), None, False, False)
    assert state.decision.target_replicas == 6
    assert state.provider == "anthropic"
    assert state.precedence.target_replicas == 6


def test_resolve_applies_cost_ceiling():
    state = ReconcileState(
        obj=_policy(cost_constraints=CostConstraints(max_hourly_cost=6, enforcement="hard")),
        bundle=Bundle(current_replicas=4),
        llm_decision=ScalingDecision(target_replicas=10, reasoning="llm target", confidence=0.9),
        llm_provider="anthropic",
        cost_ceiling=6,
        cost_reason="cost budget caps replicas at 6",
        current_workload_cost=WorkloadCost(total_cost=4, total_efficiency=0.8),
    )
    resolve_decision_state(state, PrecedenceResolver(), Estimator(), False, True)
    assert state.decision.target_replicas == 6
    assert state.provider == "cost-override"
    assert state.cost_estimate.proposed_hourly_cost == 6
    assert state.decision.reasoning == "llm target; cost budget caps replicas at 6"


def test_resolve_without_inputs_falls_back():
    state = ReconcileState(obj=_policy(), bundle=Bundle(current_replicas=3))
    resolve_decision_state(state, None, None, True, True)
    assert state.decision.target_replicas == 3
    assert state.decision.action_type == "no_change"
    assert state.provider == "fallback"
    assert state.precedence is None


def test_resolve_without_bundle_leaves_state_untouched():
    state = ReconcileState(obj=_policy(), llm_decision=ScalingDecision(target_replicas=4))
    resolve_decision_state(state, None, None, False, False)
    assert state.decision is None
    assert state.provider == ""


def test_resolve_cost_recalculation_error():
    state = ReconcileState(
        obj=_policy(min_r=0),
        bundle=Bundle(current_replicas=0),
        llm_decision=ScalingDecision(target_replicas=2, reasoning="x"),
        current_workload_cost=WorkloadCost(total_cost=1),
    )
    with pytest.raises(ValueError, match="recalculate final cost estimate"):
        resolve_decision_state(state, None, Estimator(), False, True)


def test_resolve_human_only_when_included():
    human = ScalingDecision(target_replicas=5, reasoning="awaiting human approval")
    llm = ScalingDecision(target_replicas=8, reasoning="llm", confidence=0.9)
    state = ReconcileState(
        obj=_policy(), bundle=Bundle(current_replicas=5), human_decision=human,
        llm_decision=llm, llm_provider="openai",
    )
    resolve_decision_state(state, None, None, False, False)
    assert state.decision.target_replicas == 8
    assert state.provider == "openai"

    resolve_decision_state(state, None, None, True, False)
    assert state.decision.target_replicas == 5
    assert state.provider == "approval-hold"


def test_slo_breach_prevents_scale_down():
    state = ReconcileState(
        obj=_policy(),
        bundle=Bundle(current_replicas=5),
        llm_decision=ScalingDecision(target_replicas=3, reasoning="llm down"),
        current_slos=[SLOStatus(name="lat", breached=True)],
    )
    resolve_decision_state(state, None, None, False, False)
    assert state.decision.target_replicas == 5
    assert state.provider == "slo"
    assert state.precedence.conflicts == ["llm: wanted 3 but overridden by slo"]


def test_build_slo_decision_takes_highest_wish():
    state = ReconcileState(
        bundle=Bundle(current_replicas=4),
        reactive_decision=ScalingDecision(target_replicas=7),
        llm_decision=ScalingDecision(target_replicas=9),
        current_slos=[SLOStatus(breached=True)],
    )
    decision = build_slo_decision(state)
    assert decision.target_replicas == 9
    assert decision.action_type == "scale_up"


def test_build_slo_decision_none_without_breach():
    state = ReconcileState(
        bundle=Bundle(current_replicas=4), current_slos=[SLOStatus(breached=False)]
    )
    assert build_slo_decision(state) is None


def test_build_precedence_inputs_copies_layers():
    state = ReconcileState(
        obj=_policy(min_r=2, max_r=9, precedence=PrecedenceConfig(slo_always_wins=True)),
        safety_decision=ScalingDecision(target_replicas=3, reasoning="safe"),
        human_decision=ScalingDecision(target_replicas=4, reasoning="human"),
        llm_decision=ScalingDecision(target_replicas=6, reasoning="llm", confidence=0.7),
        cost_ceiling=5,
        cost_reason="budget",
    )
    inputs = build_precedence_inputs(state, include_human=False, include_cost=True)
    assert (inputs.min_replicas, inputs.max_replicas) == (2, 9)
    assert inputs.safety_override == 3
    assert inputs.human_override is None
    assert inputs.llm_target == 6
    assert inputs.llm_confidence == 0.7
    assert inputs.cost_constrained_max == 5
    assert inputs.slo_always_wins is True
    assert inputs.reactive_rules_override_llm is False


def test_decision_for_layer_safety_source():
    safety = ScalingDecision(target_replicas=3)
    state = ReconcileState(safety_decision=safety, safety_source="rollback")
    assert decision_for_layer(state, "safety") == (safety, "rollback")
    assert decision_for_layer(ReconcileState(safety_decision=safety), "safety")[1] == "safety"
    assert decision_for_layer(ReconcileState(), "safety") == (None, "")
    assert decision_for_layer(ReconcileState(), "deterministic") == (None, "keda")


def test_materialize_without_resolution():
    state = ReconcileState(bundle=Bundle(current_replicas=7))
    decision, provider = materialize_resolved_decision(state, None)
    assert decision.target_replicas == 7
    assert provider == "fallback"


def test_materialize_does_not_mutate_source_decision():
    llm = ScalingDecision(target_replicas=10, reasoning="llm", reason_codes=["cpu"])
    state = ReconcileState(bundle=Bundle(current_replicas=4), llm_decision=llm, llm_provider="")
    resolved = ResolvedDecision(
        target_replicas=8, layers=[AuditEntry(layer="llm", target=10, applied=True)]
    )
    decision, provider = materialize_resolved_decision(state, resolved)
    assert decision.target_replicas == 8
    assert decision.action_type == "scale_up"
    assert provider == "precedence"
    assert llm.target_replicas == 10
    decision.reason_codes.append("extra")
    assert llm.reason_codes == ["cpu"]


def test_build_precedence_status():
    resolved = ResolvedDecision(
        target_replicas=3,
        layers=[
            AuditEntry(layer="safety", target=3, applied=True),
            AuditEntry(layer="llm", target=12),
            AuditEntry(layer="cost", target=3, applied=True),
        ],
        conflicts=["llm: wanted 12 but overridden by safety", "odd"],
    )
    status = build_precedence_status(resolved)
    assert status.resolved_replicas == 3
    assert status.conflicts == [
        PrecedenceConflict(layer="llm", message="wanted 12 but overridden by safety"),
        PrecedenceConflict(layer="odd", message="odd"),
    ]
    assert status.active_overrides == [ActiveOverride("safety"), ActiveOverride("cost")]
    assert build_precedence_status(None) is None


@pytest.mark.parametrize(
    "target,current,expected",
    [(5, 3, "scale_up"), (2, 3, "scale_down"), (3, 3, "no_change")],
)
def test_action_type_for_target(target, current, expected):
    assert action_type_for_target(target, current) == expected


def test_applied_layer_reason():
    resolved = ResolvedDecision(layers=[AuditEntry(layer="slo", target=4, reason="breach")])
    assert applied_layer_reason(resolved, "slo") == "breach"
    assert applied_layer_reason(resolved, "llm") == ""
    assert applied_layer_reason(None, "slo") == ""


def test_should_skip_llm_for_reactive_rules():
    assert should_skip_llm_for_reactive_rules(None) is True
    assert should_skip_llm_for_reactive_rules(PrecedenceConfig(reactive_rules_override_llm=False)) is False
    assert should_skip_llm_for_reactive_rules(PrecedenceConfig(reactive_rules_override_llm=True)) is True


def test_coordination_workload_name():
    assert coordination_workload_name(None) == ""
    assert coordination_workload_name(Scaler(name="api-policy")) == "api-policy"
    named = Scaler(name="api-policy", spec=ScalerSpec(target_ref=TargetRef(name="api")))
    assert coordination_workload_name(named) == "api"