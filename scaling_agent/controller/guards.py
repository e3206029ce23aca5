"""Safety guards of a reconcile cycle: oscillation, rollback, validation and coordination."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone

from scaling_agent.controller.costing import exceeds_cluster_budget
from scaling_agent.controller.resolution import (
    ReconcileState,
    action_type_for_target,
    coordination_workload_name,
)
from scaling_agent.coordinator.cluster import ClusterCoordinator, CoordinationError
from scaling_agent.coordinator.dependency import DependencyGraph
from scaling_agent.decision.oscillation import OscillationDetector
from scaling_agent.decision.rollback import RollbackAction, RollbackInput, RollbackManager
from scaling_agent.decision.slo import any_breached, evaluate_slos
from scaling_agent.decision.validator import ValidationResult, Validator, validate_asymmetric
from scaling_agent.models import Bundle, Scaler, ScalingDecision

logger = logging.getLogger(__name__)

PHASE_OBSERVING = "Observing"
DEFAULT_COORDINATION_DELAY = timedelta(seconds=15)
ROLLBACK_HISTORY_DEPTH = 5

EVENT_OSCILLATION_DETECTED = "oscillation_detected"
EVENT_ROLLBACK_TRIGGERED = "rollback_triggered"
EVENT_BUDGET_EXCEEDED = "budget_exceeded"


@dataclass
class AuditRecord:
    """A persisted scaling decision with the signals it was made on."""

    id: str = ""
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    workload: str = ""
    namespace: str = ""
    signals: Bundle | None = None
    provider: str = ""
    parsed_decision: ScalingDecision | None = None
    post_validation: ValidationResult | None = None
    was_clamped: bool = False
    previous_replicas: int = 0
    new_replicas: int = 0
    applied: bool = False
    dry_run: bool = False
    cost_delta_hourly: float = 0.0
    cost_delta_monthly: float = 0.0


@dataclass
class Deferral:
    """A decision to postpone scaling and look again after a delay."""

    requeue_after: timedelta
    reason: str
    message: str


def select_rollback_record(
    records: Iterable[AuditRecord | None], current_replicas: int
) -> AuditRecord | None:
    """The newest applied, live change that led to the current replica count."""
    for record in records:
        if record is None or not record.applied or record.dry_run:
            continue
        if record.new_replicas == record.previous_replicas:
            continue
        if record.new_replicas != current_replicas:
            continue
        return record
    return None


def _has_vertical_mutation(state: ReconcileState) -> bool:
    decision = state.vertical_decision
    if decision is None:
        return False
    config = state.obj.spec.vertical_scaling
    if config is None or not config.enabled:
        return False
    if config.resize_policy == "RecommendOnly" or state.obj.spec.dry_run:
        return False
    current = state.current_resources
    if current is None:
        return True
    if decision.cpu_request != current.cpu_request:
        return True
    if decision.memory_request != current.memory_request:
        return True
    if not decision.cpu_limit.is_zero() and decision.cpu_limit != current.cpu_limit:
        return True
    if not decision.memory_limit.is_zero() and decision.memory_limit != current.memory_limit:
        return True
    return False


def needs_live_coordination(state: ReconcileState | None) -> bool:
    """True if this cycle would actually change the workload."""
    if state is None or state.obj is None or state.bundle is None or state.obj.spec.dry_run:
        return False
    if (
        state.validation is not None
        and state.validation.validated_replicas != state.bundle.current_replicas
    ):
        return True
    return _has_vertical_mutation(state)


class ScalingGuards:
    """Checks that may override, clamp or postpone the decision of a cycle."""

    def __init__(
        self,
        *,
        validator: Validator | None = None,
        oscillation_detector: OscillationDetector | None = None,
        rollback_manager: RollbackManager | None = None,
        coordinator: ClusterCoordinator | None = None,
        coordination_requeue: timedelta = timedelta(0),
        cluster_max_hourly_cost: float = 0.0,
        notify: Callable[[str, str], None] | None = None,
    ) -> None:
        self.validator = validator
        self.oscillation_detector = oscillation_detector
        self.rollback_manager = rollback_manager
        self.coordinator = coordinator
        self.coordination_requeue = coordination_requeue
        self.cluster_max_hourly_cost = cluster_max_hourly_cost
        self.notify = notify

    def _emit(self, event_type: str, message: str) -> None:
        if self.notify is not None:
            self.notify(event_type, message)

    def coordination_delay(self) -> timedelta:
        """Requeue delay after a coordination deferral; 15 seconds by default."""
        if self.coordination_requeue > timedelta(0):
            return self.coordination_requeue
        return DEFAULT_COORDINATION_DELAY

    def check_oscillation(self, state: ReconcileState) -> bool:
        """Hold the current replicas if scaling is flapping; return whether it is."""
        if self.oscillation_detector is None or state.bundle is None:
            return False
        if not self.oscillation_detector.is_oscillating():
            return False

        logger.info("oscillation detected, holding current replicas")
        self._emit(
            EVENT_OSCILLATION_DETECTED, "Oscillation detected — holding current replicas"
        )
        state.safety_decision = ScalingDecision(
            target_replicas=state.bundle.current_replicas,
            reasoning="oscillation detected, maintaining current replicas",
            confidence=1.0,
            action_type="no_change",
        )
        state.safety_source = "safety"
        return True

    def check_rollback(
        self, state: ReconcileState, records: Sequence[AuditRecord | None]
    ) -> RollbackAction | None:
        """Recommend reverting the last change if it made things worse.

        ``records`` is the audit history, newest first. Returns the recommended
        action, or None if no rollback is due.
        """
        if self.rollback_manager is None or state.bundle is None:
            return None
        safety = state.obj.spec.safety
        auto = safety.auto_rollback if safety is not None else None
        if auto is None or not auto.enabled or not auto.conditions:
            return None

        workload = state.obj.spec.target_ref.name
        history = [r for r in records if r is not None and r.workload == workload]
        record = select_rollback_record(
            history[:ROLLBACK_HISTORY_DEPTH], state.bundle.current_replicas
        )
        if record is None or record.signals is None:
            return None

        slos = state.obj.spec.slos
        before_met = after_met = True
        if slos:
            before_met = not any_breached(evaluate_slos(slos, record.signals))
            current = state.current_slos or evaluate_slos(slos, state.bundle)
            after_met = not any_breached(current)

        action = self.rollback_manager.check_for_rollback(
            RollbackInput(
                previous_replicas=record.previous_replicas,
                current_replicas=state.bundle.current_replicas,
                slos_met_before=before_met,
                slos_met_after=after_met,
                error_rate_before=record.signals.error_rate,
                error_rate_after=state.bundle.error_rate,
                latency_before=record.signals.p95_latency_ms,
                latency_after=state.bundle.p95_latency_ms,
                crash_loop_detected=False,
                auto_rollback_enabled=True,
                rollback_conditions=list(auto.conditions),
            )
        )
        if not action.recommended:
            return None

        state.rollback_action = action
        state.safety_decision = ScalingDecision(
            target_replicas=action.target_replicas,
            reasoning=action.reason,
            confidence=1.0,
            action_type=action_type_for_target(
                action.target_replicas, state.bundle.current_replicas
            ),
        )
        state.safety_source = "rollback"
        self._emit(EVENT_ROLLBACK_TRIGGERED, action.reason)
        return action

    def validate_decision(self, state: ReconcileState) -> ValidationResult | None:
        """Clamp the decision to the policy's limits and store the result."""
        if state.decision is None or state.bundle is None:
            return None
        current = state.bundle.current_replicas
        safety = state.obj.spec.safety
        if safety is not None and (safety.scale_up is not None or safety.scale_down is not None):
            result: ValidationResult = validate_asymmetric(state.decision, current, state.obj)
        else:
            validator = self.validator or Validator()
            result = validator.validate(state.decision, current, state.obj)
        if result.clamped:
            logger.info(
                "decision clamped by validator: %d -> %d (%s)",
                result.original_replicas,
                result.validated_replicas,
                result.reason,
            )
        state.validation = result
        return result

    def _defer(self, state: ReconcileState, reason: str, message: str) -> Deferral:
        logger.info("%s (workload %s)", message, coordination_workload_name(state.obj))
        state.phase = PHASE_OBSERVING
        return Deferral(requeue_after=self.coordination_delay(), reason=reason, message=message)

    def check_coordination(
        self, state: ReconcileState, policies: Iterable[Scaler]
    ) -> Deferral | None:
        """Acquire a cluster scaling slot, or return why scaling must wait."""
        if (
            self.coordinator is None
            or state.obj is None
            or state.bundle is None
            or not needs_live_coordination(state)
        ):
            return None

        policies = list(policies)
        workload = coordination_workload_name(state.obj)
        active = self.coordinator.active_workloads() - {workload}

        graph = DependencyGraph()
        graph.build_from_policies(policies)
        if graph.should_defer(workload, active):
            return self._defer(
                state,
                "DependencyDeferred",
                "dependent workload is currently scaling; deferring coordinated change",
            )

        limit = self.cluster_max_hourly_cost
        if limit > 0 and exceeds_cluster_budget(policies, state, limit):
            message = f"projected cluster hourly cost would exceed limit ${limit:.2f}"
            self._emit(EVENT_BUDGET_EXCEEDED, message)
            return self._defer(state, "ClusterBudgetDeferred", message)

        try:
            self.coordinator.acquire_scaling_slot(workload)
        except CoordinationError as exc:
            return self._defer(state, "CoordinatorDeferred", str(exc))

        state.coordination_slot_held = True
        state.coordination_workload = workload
        return None

    def release_coordination(self, state: ReconcileState | None) -> None:
        """Release the slot held by this cycle, if any."""
        if self.coordinator is None or state is None or not state.coordination_slot_held:
            return
        workload = state.coordination_workload
        if not workload and state.obj is not None:
            workload = coordination_workload_name(state.obj)
        if not workload:
            return
        self.coordinator.release_scaling_slot(workload)
        state.coordination_slot_held = False