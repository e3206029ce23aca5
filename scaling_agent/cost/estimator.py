"""Cost impact estimation for a proposed replica change."""

from __future__ import annotations

from dataclasses import dataclass

HOURS_PER_MONTH = 24 * 30


@dataclass
class WorkloadCost:
    """Hourly cost and efficiency figures for a workload."""

    total_cost: float = 0.0
    cpu_cost: float = 0.0
    memory_cost: float = 0.0
    cpu_efficiency: float = 0.0
    ram_efficiency: float = 0.0
    total_efficiency: float = 0.0


@dataclass
class CostEstimate:
    """Projected cost of a scaling decision."""

    current_hourly_cost: float = 0.0
    proposed_hourly_cost: float = 0.0
    delta_hourly_cost: float = 0.0
    delta_monthly_cost: float = 0.0
    cost_per_replica: float = 0.0
    waste_reduction: float = 0.0


class Estimator:
    """Estimates cost deltas assuming cost scales linearly with replicas."""

    def estimate(
        self, current_cost: WorkloadCost, current_replicas: int, proposed_replicas: int
    ) -> CostEstimate:
        """Raise ValueError if the current replica count is not positive."""
        if current_replicas <= 0:
            raise ValueError(f"invalid current replicas: {current_replicas}")

        per_replica = current_cost.total_cost / current_replicas
        proposed = per_replica * proposed_replicas
        delta = proposed - current_cost.total_cost

        waste_reduction = 0.0
        if current_cost.total_efficiency > 0 and proposed_replicas < current_replicas:
            waste_reduction = (
                (1 - current_cost.total_efficiency)
                * (current_replicas - proposed_replicas)
                / current_replicas
                * 100
            )

        return CostEstimate(
            current_hourly_cost=current_cost.total_cost,
            proposed_hourly_cost=proposed,
            delta_hourly_cost=delta,
            delta_monthly_cost=delta * HOURS_PER_MONTH,
            cost_per_replica=per_replica,
            waste_reduction=waste_reduction,
        )