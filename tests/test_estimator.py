import pytest

from scaling_agent.cost.estimator import Estimator, WorkloadCost


def test_scale_up():
    est = Estimator().estimate(WorkloadCost(total_cost=1.0, total_efficiency=0.7), 2, 4)
    assert est.cost_per_replica == 0.5
    assert est.proposed_hourly_cost == 2.0
    assert est.delta_hourly_cost == 1.0
    assert est.waste_reduction == 0


def test_scale_down():
    est = Estimator().estimate(WorkloadCost(total_cost=2.0, total_efficiency=0.5), 4, 2)
    assert est.delta_hourly_cost < 0
    assert est.waste_reduction > 0


def test_invalid_replicas():
    with pytest.raises(ValueError, match="invalid current replicas: 0"):
        Estimator().estimate(WorkloadCost(total_cost=1.0), 0, 2)


def test_monthly_delta_follows_hourly_delta():
    est = Estimator().estimate(WorkloadCost(total_cost=4.0, total_efficiency=0.8), 4, 6)
    assert est.proposed_hourly_cost == 6
    assert est.delta_monthly_cost == pytest.approx(est.delta_hourly_cost * 24 * 30)
    assert est.current_hourly_cost == 4.0


def test_no_change_has_zero_delta():
    est = Estimator().estimate(WorkloadCost(total_cost=3.0, total_efficiency=0.5), 3, 3)
    assert est.delta_hourly_cost == 0
    assert est.delta_monthly_cost == 0
    assert est.proposed_hourly_cost == est.current_hourly_cost