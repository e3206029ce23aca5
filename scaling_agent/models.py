"""Shared data types for scaling policies, signal bundles and decisions."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any


@dataclass
class ReactiveRule:
    """A threshold rule that maps a metric condition to a replica action."""

    metric: str = ""
    operator: str = ""
    threshold: float = 0.0
    action: str = ""
    amount: int = 0


@dataclass
class Bundle:
    """A snapshot of the signals collected for one workload."""

    current_replicas: int = 0
    ready_replicas: int = 0
    cpu_utilization: float = 0.0
    memory_utilization: float = 0.0
    p95_latency_ms: float = 0.0
    error_rate: float = 0.0
    queue_depth: float = 0.0
    deployment_ready: bool = False
    keda_desired_replicas: int = 0
    custom_signals: dict[str, float] = field(default_factory=dict)
    source_health: dict[str, bool] = field(default_factory=dict)
    reactive_rules: list[ReactiveRule] = field(default_factory=list)

    def metric(self, name: str) -> float:
        """Return the current value of a named metric, or 0 if unknown."""
        builtin = {
            "p95_latency": self.p95_latency_ms,
            # p99 is not tracked separately; p95 stands in for it.
            "p99_latency": self.p95_latency_ms,
            "error_rate": self.error_rate,
            "cpu_utilization": self.cpu_utilization,
            "memory_utilization": self.memory_utilization,
            "queue_depth": self.queue_depth,
        }
        if name in builtin:
            return builtin[name]
        return self.custom_signals.get(name, 0.0)


@dataclass
class VerticalProposal:
    """Resource changes proposed alongside a scaling decision."""

    cpu_request: str = ""
    memory_request: str = ""
    cpu_limit: str = ""
    memory_limit: str = ""
    resize_strategy: str = ""


@dataclass
class ScalingDecision:
    """A proposed replica count with its justification."""

    target_replicas: int = 0
    reasoning: str = ""
    confidence: float = 0.0
    action_type: str = ""
    urgency: str = ""
    reason_codes: list[str] | None = None
    vertical_changes: VerticalProposal | None = None


@dataclass
class ScalingConstraints:
    """Hard replica bounds and step limits of a policy."""

    min_replicas: int = 0
    max_replicas: int = 0
    max_scale_step: int = 0
    min_confidence: float = 0.0


@dataclass
class DirectionPolicy:
    """Limits that apply to one scaling direction."""

    max_step: int = 0
    require_confidence: float = 0.0


@dataclass
class AutoRollbackConfig:
    """Automatic rollback settings."""

    enabled: bool = False
    conditions: list[str] = field(default_factory=list)


@dataclass
class SafetyConfig:
    """Per-direction limits and rollback settings."""

    scale_up: DirectionPolicy | None = None
    scale_down: DirectionPolicy | None = None
    auto_rollback: AutoRollbackConfig | None = None


@dataclass
class SLO:
    """A service level objective on one metric."""

    name: str = ""
    metric: str = ""
    target: float = 0.0
    priority: int = 0


@dataclass
class CostConstraints:
    """Cost budgets for a workload."""

    max_hourly_cost: float = 0.0
    max_monthly_cost: float = 0.0
    enforcement: str = ""


@dataclass
class PrecedenceConfig:
    """Switches that reorder the decision precedence layers."""

    schedule_overrides_llm: bool = False
    reactive_rules_override_llm: bool = False
    slo_always_wins: bool = False
    log_conflicts: bool = False


@dataclass
class TargetRef:
    """Reference to the scaled workload."""

    name: str = ""
    namespace: str = ""
    kind: str = "Deployment"


@dataclass
class CoscaleRef:
    """A workload that scales together with another, by a ratio."""

    target_ref: TargetRef = field(default_factory=TargetRef)
    ratio: float = 0.0


@dataclass
class DependencyConfig:
    """Dependency relations between workloads."""

    upstream_of: list[TargetRef] = field(default_factory=list)
    downstream_of: list[TargetRef] = field(default_factory=list)
    coscales_with: list[CoscaleRef] = field(default_factory=list)


@dataclass
class CostStatus:
    """Observed cost figures for a workload."""

    current_hourly_cost: float = 0.0
    current_monthly_cost: float = 0.0
    waste_percent: float = 0.0
    budget_utilization: float = 0.0


@dataclass
class ScalerSpec:
    """Desired behaviour of a scaling policy."""

    target_ref: TargetRef = field(default_factory=TargetRef)
    constraints: ScalingConstraints = field(default_factory=ScalingConstraints)
    safety: SafetyConfig | None = None
    slos: list[SLO] = field(default_factory=list)
    cost_constraints: CostConstraints | None = None
    precedence: PrecedenceConfig | None = None
    dependencies: DependencyConfig | None = None
    vertical_scaling: Any = None
    feedback: Any = None
    dry_run: bool = False
    evaluation_interval: timedelta = field(default_factory=timedelta)
    cooldown_period: timedelta = field(default_factory=timedelta)


@dataclass
class ScalerStatus:
    """Observed state of a scaling policy."""

    phase: str = ""
    current_replicas: int = 0
    desired_replicas: int = 0
    last_provider: str = ""
    last_decision_reason: str = ""
    last_decision_id: str = ""
    cost: CostStatus | None = None


@dataclass
class Scaler:
    """A scaling policy: metadata, spec and status."""

    name: str = ""
    namespace: str = ""
    spec: ScalerSpec = field(default_factory=ScalerSpec)
    status: ScalerStatus = field(default_factory=ScalerStatus)