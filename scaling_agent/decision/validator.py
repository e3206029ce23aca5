"""Guardrails applied to every proposed replica count before actuation."""

from __future__ import annotations

from dataclasses import dataclass

from scaling_agent.models import DirectionPolicy, Scaler, ScalingConstraints, ScalingDecision


@dataclass
class ValidationResult:
    """Outcome of a validation pass."""

    original_replicas: int = 0
    validated_replicas: int = 0
    clamped: bool = False
    reason: str = ""


@dataclass
class AsymmetricValidationResult(ValidationResult):
    """Validation result with the scaling direction and its step limit."""

    direction: str = "none"
    direction_limit: int = 0


def direction_of(target: int, current: int) -> str:
    """Return "up", "down" or "none"."""
    if target > current:
        return "up"
    if target < current:
        return "down"
    return "none"


def _clamp_to_bounds(target: int, constraints: ScalingConstraints) -> int:
    if target < constraints.min_replicas:
        return constraints.min_replicas
    if target > constraints.max_replicas:
        return constraints.max_replicas
    return target


def _clamp_reason(original: int, validated: int, current: int, c: ScalingConstraints) -> str:
    delta = original - current
    if delta > c.max_scale_step:
        return (
            f"LLM suggested {original} but step size {delta} exceeds maxScaleStep "
            f"{c.max_scale_step} — clamped to {validated}"
        )
    if delta < -c.max_scale_step:
        return (
            f"LLM suggested {original} but step size {-delta} exceeds maxScaleStep "
            f"{c.max_scale_step} — clamped to {validated}"
        )
    if original < c.min_replicas:
        return f"LLM suggested {original} which is below minReplicas {c.min_replicas} — clamped to {validated}"
    if original > c.max_replicas:
        return f"LLM suggested {original} which is above maxReplicas {c.max_replicas} — clamped to {validated}"
    return f"clamped from {original} to {validated}"


class Validator:
    """Enforces step size and min/max bounds on a decision."""

    def validate(self, decision: ScalingDecision, current: int, policy: Scaler) -> ValidationResult:
        """Clamp the step first, then the bounds, and explain any change."""
        constraints = policy.spec.constraints
        original = target = decision.target_replicas

        delta = target - current
        if delta > constraints.max_scale_step:
            target = current + constraints.max_scale_step
        elif delta < -constraints.max_scale_step:
            target = current - constraints.max_scale_step

        target = _clamp_to_bounds(target, constraints)

        clamped = target != original
        return ValidationResult(
            original_replicas=original,
            validated_replicas=target,
            clamped=clamped,
            reason=_clamp_reason(original, target, current, constraints) if clamped else "",
        )


def validate_asymmetric(
    decision: ScalingDecision, current: int, policy: Scaler
) -> AsymmetricValidationResult:
    """Apply per-direction limits, falling back to symmetric validation."""
    safety = policy.spec.safety
    if safety is None:
        base = Validator().validate(decision, current, policy)
        return AsymmetricValidationResult(
            original_replicas=base.original_replicas,
            validated_replicas=base.validated_replicas,
            clamped=base.clamped,
            reason=base.reason,
            direction=direction_of(decision.target_replicas, current),
        )

    original = target = decision.target_replicas
    direction = direction_of(target, current)

    policy_for_direction: DirectionPolicy | None = None
    if direction == "up":
        policy_for_direction = safety.scale_up
    elif direction == "down":
        policy_for_direction = safety.scale_down

    limit = 0
    if policy_for_direction is not None:
        limit = policy_for_direction.max_step
        if limit > 0:
            delta = target - current
            if delta > limit:
                target = current + limit
            elif delta < -limit:
                target = current - limit
        required = policy_for_direction.require_confidence
        if required > 0 and decision.confidence < required:
            target = current

    target = _clamp_to_bounds(target, policy.spec.constraints)

    clamped = target != original
    return AsymmetricValidationResult(
        original_replicas=original,
        validated_replicas=target,
        clamped=clamped,
        reason=f"asymmetric {direction}: clamped from {original} to {target}" if clamped else "",
        direction=direction,
        direction_limit=limit,
    )