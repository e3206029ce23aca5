"""Checks of projected cost against hourly and monthly budgets."""

from __future__ import annotations

from dataclasses import dataclass

from scaling_agent.cost.estimator import HOURS_PER_MONTH, CostEstimate


@dataclass
class BudgetCheckResult:
    """Whether a change is allowed, why, and how much budget is left."""

    allowed: bool
    reason: str = ""
    remaining: float = 0.0


class BudgetEnforcer:
    """Denies over-budget changes under "hard" enforcement, warns otherwise."""

    def check(
        self,
        max_hourly: float,
        max_monthly: float,
        enforcement: str,
        estimate: CostEstimate,
    ) -> BudgetCheckResult:
        proposed = estimate.proposed_hourly_cost

        if max_hourly > 0 and proposed > max_hourly:
            message = f"proposed hourly cost ${proposed:.2f} exceeds budget ${max_hourly:.2f}"
            return self._over_budget(message, enforcement, max_hourly - proposed)

        if max_monthly > 0:
            projected = proposed * HOURS_PER_MONTH
            if projected > max_monthly:
                message = (
                    f"projected monthly cost ${projected:.2f} exceeds budget ${max_monthly:.2f}"
                )
                return self._over_budget(message, enforcement, max_monthly - projected)

        return BudgetCheckResult(allowed=True, remaining=max_hourly - proposed)

    @staticmethod
    def _over_budget(message: str, enforcement: str, remaining: float) -> BudgetCheckResult:
        if enforcement == "hard":
            return BudgetCheckResult(allowed=False, reason=message, remaining=remaining)
        return BudgetCheckResult(allowed=True, reason="WARNING: " + message, remaining=remaining)