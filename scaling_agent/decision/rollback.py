"""Detection of scaling changes that made things worse and should be reverted."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class RollbackAction:
    """A recommendation to return to a previous replica count."""

    recommended: bool = False
    reason: str = ""
    target_replicas: int = 0
    previous_replicas: int = 0


@dataclass
class RollbackInput:
    """Signals before and after the last scaling change."""

    previous_replicas: int = 0
    current_replicas: int = 0
    slos_met_before: bool = False
    slos_met_after: bool = False
    error_rate_before: float = 0.0
    error_rate_after: float = 0.0
    latency_before: float = 0.0
    latency_after: float = 0.0
    crash_loop_detected: bool = False
    auto_rollback_enabled: bool = False
    rollback_conditions: list[str] = field(default_factory=list)


class RollbackManager:
    """Checks the configured rollback conditions in order; the first hit wins."""

    def check_for_rollback(self, inputs: RollbackInput) -> RollbackAction:
        if not inputs.auto_rollback_enabled:
            return RollbackAction()

        for condition in inputs.rollback_conditions:
            reason = self._triggered(condition, inputs)
            if reason:
                return RollbackAction(
                    recommended=True,
                    reason=reason,
                    target_replicas=inputs.previous_replicas,
                    previous_replicas=inputs.current_replicas,
                )
        return RollbackAction()

    @staticmethod
    def _triggered(condition: str, i: RollbackInput) -> str:
        if condition == "sloViolationWithin":
            if i.slos_met_before and not i.slos_met_after:
                return (
                    f"SLO violation detected after scaling from {i.previous_replicas} "
                    f"to {i.current_replicas}"
                )
        elif condition == "crashLoopDetected":
            if i.crash_loop_detected:
                return "crash loop detected after scaling"
        elif condition == "errorRateIncrease":
            if i.error_rate_after > i.error_rate_before * 1.5 and i.error_rate_after > 0.01:
                return (
                    f"error rate increased from {i.error_rate_before * 100:.2f}% "
                    f"to {i.error_rate_after * 100:.2f}% after scaling"
                )
        elif condition == "latencyIncrease":
            if i.latency_after > i.latency_before * 2 and i.latency_after > 50:
                return (
                    f"latency increased from {i.latency_before:.1f}ms "
                    f"to {i.latency_after:.1f}ms after scaling"
                )
        return ""