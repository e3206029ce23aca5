"""Cluster-wide limits on concurrent scaling operations and spend."""

from __future__ import annotations

import threading
import time
from collections.abc import Callable

SLOT_TTL_SECONDS = 5 * 60


class CoordinationError(Exception):
    """Raised when a scaling slot cannot be granted."""


class ClusterCoordinator:
    """Tracks which workloads are scaling; slots expire after five minutes."""

    def __init__(
        self,
        max_concurrent: int = 0,
        total_budget: float = 0.0,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.max_concurrent = max_concurrent
        self.total_budget = total_budget
        self._current_spend = 0.0
        self._active: dict[str, float] = {}
        self._clock = clock
        self._lock = threading.Lock()

    def _cleanup(self) -> None:
        cutoff = self._clock() - SLOT_TTL_SECONDS
        for workload in [w for w, started in self._active.items() if started < cutoff]:
            del self._active[workload]

    def acquire_scaling_slot(self, workload: str) -> None:
        """Grant or refresh a slot; raise CoordinationError at the concurrency limit."""
        with self._lock:
            self._cleanup()
            if workload not in self._active and 0 < self.max_concurrent <= len(self._active):
                raise CoordinationError(
                    f"max concurrent scaling operations reached ({self.max_concurrent}), "
                    f"deferring {workload}"
                )
            self._active[workload] = self._clock()

    def release_scaling_slot(self, workload: str) -> None:
        """Release a slot; releasing an unknown workload does nothing."""
        with self._lock:
            self._active.pop(workload, None)

    def active_operations(self) -> int:
        """Number of live scaling slots."""
        with self._lock:
            self._cleanup()
            return len(self._active)

    def active_workloads(self) -> set[str]:
        """Snapshot of workloads holding a live slot."""
        with self._lock:
            self._cleanup()
            return set(self._active)

    def check_budget(self, delta_cost: float) -> tuple[bool, float]:
        """Return whether ``delta_cost`` fits and the budget left afterwards.

        Without a budget every change fits and 0 is reported. When it does not
        fit, the budget currently remaining is reported.
        """
        with self._lock:
            if self.total_budget <= 0:
                return True, 0.0
            remaining = self.total_budget - self._current_spend
            if delta_cost > remaining:
                return False, remaining
            return True, remaining - delta_cost

    def record_spend(self, amount: float) -> None:
        """Charge an amount against the cluster budget."""
        with self._lock:
            self._current_spend += amount