"""Cost estimation, budget ceilings and cluster budget checks for a reconcile cycle."""

from __future__ import annotations

import logging
from collections.abc import Iterable

from scaling_agent.controller.resolution import ReconcileState, coordination_workload_name
from scaling_agent.cost.budget import BudgetCheckResult, BudgetEnforcer
from scaling_agent.cost.estimator import HOURS_PER_MONTH, CostEstimate, Estimator, WorkloadCost
from scaling_agent.models import CostConstraints, Scaler

logger = logging.getLogger(__name__)


def compute_cost_ceiling(
    constraints: CostConstraints | None,
    estimate: CostEstimate | None,
    min_replicas: int,
) -> tuple[int | None, str]:
    """Largest affordable replica count under the budgets, never below ``min_replicas``.

    Returns ``(None, "")`` when there is no budget or no per-replica cost.
    """
    if constraints is None or estimate is None or estimate.cost_per_replica <= 0:
        return None, ""

    affordable: int | None = None
    if constraints.max_hourly_cost > 0:
        affordable = int(constraints.max_hourly_cost / estimate.cost_per_replica)
    if constraints.max_monthly_cost > 0:
        monthly_cap = int(
            (constraints.max_monthly_cost / HOURS_PER_MONTH) / estimate.cost_per_replica
        )
        if affordable is None or monthly_cap < affordable:
            affordable = monthly_cap
    if affordable is None:
        return None, ""

    affordable = max(affordable, min_replicas)
    return affordable, f"cost budget caps replicas at {affordable}"


def compute_budget_utilization(
    constraints: CostConstraints | None, estimate: CostEstimate | None
) -> float:
    """Percentage of the tighter budget that the proposed cost would use."""
    if constraints is None or estimate is None:
        return 0.0
    utilization = 0.0
    if constraints.max_hourly_cost > 0:
        utilization = estimate.proposed_hourly_cost / constraints.max_hourly_cost * 100
    if constraints.max_monthly_cost > 0:
        monthly = (
            estimate.proposed_hourly_cost * HOURS_PER_MONTH / constraints.max_monthly_cost * 100
        )
        utilization = max(utilization, monthly)
    return utilization


def exceeds_cluster_budget(
    policies: Iterable[Scaler],
    state: ReconcileState | None,
    cluster_max_hourly_cost: float,
) -> bool:
    """True if the proposed cost increase would push the cluster over its hourly limit."""
    if (
        cluster_max_hourly_cost <= 0
        or state is None
        or state.cost_estimate is None
        or state.cost_estimate.delta_hourly_cost <= 0
    ):
        return False

    current_workload = coordination_workload_name(state.obj)
    total = sum(
        policy.status.cost.current_hourly_cost
        for policy in policies
        if coordination_workload_name(policy) != current_workload
        and policy.status.cost is not None
    )
    total += state.cost_estimate.current_hourly_cost
    return total + state.cost_estimate.delta_hourly_cost > cluster_max_hourly_cost


class CostGate:
    """Estimates the cost of the tentative decision and sets a budget ceiling."""

    def __init__(
        self,
        estimator: Estimator | None = None,
        budget_enforcer: BudgetEnforcer | None = None,
    ) -> None:
        self.estimator = estimator
        self.budget_enforcer = budget_enforcer

    def estimate_cost(
        self, state: ReconcileState, workload_cost: WorkloadCost | None
    ) -> BudgetCheckResult | None:
        """Record the estimate on the state and cap it if a hard budget is exceeded.

        Returns the budget check result, or None if no check was made.
        """
        if self.estimator is None or workload_cost is None:
            return None
        if state.bundle is None or state.decision is None:
            return None

        state.current_workload_cost = workload_cost
        try:
            estimate = self.estimator.estimate(
                workload_cost, state.bundle.current_replicas, state.decision.target_replicas
            )
        except ValueError:
            logger.exception("failed to estimate cost")
            return None
        state.cost_estimate = estimate

        constraints = state.obj.spec.cost_constraints
        if self.budget_enforcer is None or constraints is None:
            return None

        result = self.budget_enforcer.check(
            constraints.max_hourly_cost,
            constraints.max_monthly_cost,
            constraints.enforcement,
            estimate,
        )
        if not result.allowed:
            logger.info("budget exceeded, capping decision: %s", result.reason)
            ceiling, reason = compute_cost_ceiling(
                constraints, estimate, state.obj.spec.constraints.min_replicas
            )
            state.cost_ceiling = ceiling if ceiling is not None else state.bundle.current_replicas
            state.cost_reason = reason or result.reason
        return result