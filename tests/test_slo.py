from scaling_agent.decision.slo import (
    SLOStatus,
    any_breached,
    compute_margin,
    evaluate_slos,
    format_slo_context,
)
from scaling_agent.models import SLO, Bundle


def test_evaluate_slos_all_ok():
    slos = [
        SLO(name="latency-slo", metric="p95_latency", target=200),
        SLO(name="error-slo", metric="error_rate", target=1.0),
    ]
    statuses = evaluate_slos(slos, Bundle(p95_latency_ms=150, error_rate=0.5))
    assert len(statuses) == 2
    for status in statuses:
        assert not status.breached
        assert status.margin >= 0


def test_evaluate_slos_breached():
    slos = [SLO(name="latency-slo", metric="p95_latency", target=200)]
    statuses = evaluate_slos(slos, Bundle(p95_latency_ms=450))
    assert len(statuses) == 1
    assert statuses[0].breached
    assert statuses[0].margin < 0
    assert statuses[0].actual == 450


def test_evaluate_slos_custom_signal():
    slos = [SLO(name="custom-slo", metric="my_metric", target=100)]
    statuses = evaluate_slos(slos, Bundle(custom_signals={"my_metric": 50}))
    assert not statuses[0].breached


def test_any_breached():
    assert any_breached([SLOStatus(breached=False), SLOStatus(breached=True)])


def test_any_breached_all_ok():
    assert not any_breached([SLOStatus(breached=False), SLOStatus(breached=False)])


def test_format_slo_context_empty():
    assert format_slo_context(None) == ""
    assert format_slo_context([]) == ""


def test_format_slo_context_with_breaches():
    statuses = [
        SLOStatus(name="slo1", metric="p95_latency", target=200, actual=450, breached=True, margin=-125),
        SLOStatus(name="slo2", metric="error_rate", target=0.1, actual=0.05, breached=False, margin=50),
    ]
    result = format_slo_context(statuses)
    assert result.startswith("SLO Status:\n")
    assert "BREACHED" in result
    assert "OK" in result
    assert "  - slo1 (p95_latency): target=200.00 actual=450.00 [BREACHED] margin=-125.0%\n" in result
    assert result.endswith("If any SLO is breached, scale up.")


def test_compute_margin_zero_target():
    assert compute_margin("error_rate", 0, 0) == 100
    assert compute_margin("error_rate", 0, 5) == -100


def test_compute_margin_availability_is_higher_better():
    assert compute_margin("availability", 100, 50) == -50
    assert compute_margin("p95_latency", 100, 50) == 50


def test_priority_carried_into_status():
    statuses = evaluate_slos([SLO(name="a", metric="queue_depth", target=10, priority=3)], Bundle(queue_depth=5))
    assert statuses[0].priority == 3
    assert statuses[0].margin == 50