"""Workload dependency graph used to avoid scaling neighbours at once."""

from __future__ import annotations

import threading
from collections.abc import Collection, Iterable, Mapping
from dataclasses import dataclass, field

from scaling_agent.models import Scaler


@dataclass
class CoscaleEntry:
    """A workload that scales together with another, by a ratio."""

    workload: str
    ratio: float = 0.0


@dataclass
class WorkloadNode:
    """A workload with its upstream, downstream and co-scaling neighbours."""

    name: str
    upstream: list[str] = field(default_factory=list)
    downstream: list[str] = field(default_factory=list)
    coscales: list[CoscaleEntry] = field(default_factory=list)


def _is_active(active: Collection[str] | Mapping[str, bool], name: str) -> bool:
    if isinstance(active, Mapping):
        return bool(active.get(name))
    return name in active


class DependencyGraph:
    """Nodes keyed by target workload name, falling back to the policy name."""

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._nodes: dict[str, WorkloadNode] = {}

    def build_from_policies(self, policies: Iterable[Scaler]) -> None:
        """Replace the graph with one built from the given policies."""
        nodes: dict[str, WorkloadNode] = {}
        for policy in policies:
            name = policy.spec.target_ref.name or policy.name
            node = WorkloadNode(name=name)
            deps = policy.spec.dependencies
            if deps is not None:
                node.upstream = [ref.name for ref in deps.upstream_of]
                node.downstream = [ref.name for ref in deps.downstream_of]
                node.coscales = [
                    CoscaleEntry(workload=co.target_ref.name, ratio=co.ratio)
                    for co in deps.coscales_with
                ]
            nodes[name] = node
        with self._lock:
            self._nodes = nodes

    def should_defer(
        self, workload: str, active_scaling: Collection[str] | Mapping[str, bool]
    ) -> bool:
        """True if an upstream or downstream neighbour is currently scaling."""
        with self._lock:
            node = self._nodes.get(workload)
        if node is None:
            return False
        return any(
            _is_active(active_scaling, name) for name in (*node.upstream, *node.downstream)
        )

    def coscale_targets(self, workload: str) -> list[CoscaleEntry]:
        """Workloads that co-scale with ``workload``; empty if it is unknown."""
        with self._lock:
            node = self._nodes.get(workload)
        return list(node.coscales) if node is not None else []