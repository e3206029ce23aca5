from scaling_agent.coordinator.dependency import DependencyGraph
from scaling_agent.models import (
    CoscaleRef,
    DependencyConfig,
    Scaler,
    ScalerSpec,
    TargetRef,
)


def _api_policy():
    return Scaler(
        spec=ScalerSpec(
            target_ref=TargetRef(name="api", namespace="default"),
            dependencies=DependencyConfig(
                upstream_of=[TargetRef(name="db", namespace="default")],
                coscales_with=[
                    CoscaleRef(target_ref=TargetRef(name="worker", namespace="default"), ratio=2)
                ],
            ),
        )
    )


def test_uses_target_workload_name():
    graph = DependencyGraph()
    graph.build_from_policies([_api_policy()])

    assert graph.should_defer("api", {"db": True}) is True

    targets = graph.coscale_targets("api")
    assert len(targets) == 1
    assert targets[0].workload == "worker"
    assert targets[0].ratio == 2


def test_inactive_dependency_does_not_defer():
    graph = DependencyGraph()
    graph.build_from_policies([_api_policy()])
    assert graph.should_defer("api", {"db": False}) is False
    assert graph.should_defer("api", {"other"}) is False


def test_set_of_active_workloads_is_accepted():
    graph = DependencyGraph()
    graph.build_from_policies([_api_policy()])
    assert graph.should_defer("api", {"db"}) is True


def test_downstream_defers():
    policy = Scaler(
        spec=ScalerSpec(
            target_ref=TargetRef(name="cache"),
            dependencies=DependencyConfig(downstream_of=[TargetRef(name="frontend")]),
        )
    )
    graph = DependencyGraph()
    graph.build_from_policies([policy])
    assert graph.should_defer("cache", {"frontend": True}) is True


def test_falls_back_to_policy_name():
    policy = Scaler(
        name="batch-policy",
        spec=ScalerSpec(dependencies=DependencyConfig(upstream_of=[TargetRef(name="queue")])),
    )
    graph = DependencyGraph()
    graph.build_from_policies([policy])
    assert graph.should_defer("batch-policy", {"queue"}) is True


def test_unknown_workload():
    graph = DependencyGraph()
    graph.build_from_policies([_api_policy()])
    assert graph.should_defer("missing", {"db"}) is False
    assert graph.coscale_targets("missing") == []


def test_rebuild_replaces_graph():
    graph = DependencyGraph()
    graph.build_from_policies([_api_policy()])
    graph.build_from_policies([Scaler(spec=ScalerSpec(target_ref=TargetRef(name="other")))])
    assert graph.should_defer("api", {"db"}) is False
    assert graph.coscale_targets("api") == []