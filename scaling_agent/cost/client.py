"""Reader for workload cost data from an OpenCost allocation endpoint."""

from __future__ import annotations

import json
from typing import Any
from urllib.error import HTTPError, URLError
from urllib.parse import quote
from urllib.request import Request, urlopen

from scaling_agent.cost.estimator import WorkloadCost

_FIELDS = {
    "total_cost": "totalCost",
    "cpu_cost": "cpuCost",
    "memory_cost": "memoryCost",
    "cpu_efficiency": "cpuEfficiency",
    "ram_efficiency": "ramEfficiency",
    "total_efficiency": "totalEfficiency",
}


class CostClientError(Exception):
    """Raised when cost data cannot be fetched or decoded."""


class CostClient:
    """Fetches the last hour's cost of a namespace."""

    def __init__(self, endpoint: str, timeout: float = 15.0) -> None:
        self.endpoint = endpoint
        self.timeout = timeout

    def workload_cost(self, namespace: str) -> WorkloadCost:
        """Return the namespace's cost; all zeros if the response does not list it."""
        url = (
            f"{self.endpoint}/allocation/compute?window=1h&aggregate=namespace"
            f"&filterNamespaces={quote(namespace, safe='')}"
        )
        try:
            with urlopen(Request(url, method="GET"), timeout=self.timeout) as response:
                status = response.status
                body = response.read()
        except HTTPError as exc:
            exc.close()
            raise CostClientError(f"opencost status {exc.code}") from exc
        except (URLError, OSError, ValueError) as exc:
            raise CostClientError(f"opencost request: {exc}") from exc

        if status != 200:
            raise CostClientError(f"opencost status {status}")

        try:
            payload = json.loads(body)
            return _extract(payload, namespace)
        except (ValueError, TypeError, AttributeError) as exc:
            raise CostClientError(f"decode response: {exc}") from exc


def _extract(payload: Any, namespace: str) -> WorkloadCost:
    if not isinstance(payload, dict):
        raise TypeError("response is not an object")
    windows = payload.get("data") or []
    if not isinstance(windows, list):
        raise TypeError("data is not a list")
    for window in windows:
        if window is None:
            continue
        if not isinstance(window, dict):
            raise TypeError("allocation window is not an object")
        entry = window.get(namespace)
        if entry is None:
            continue
        if not isinstance(entry, dict):
            raise TypeError("allocation entry is not an object")
        return WorkloadCost(
            **{attr: float(entry.get(key) or 0.0) for attr, key in _FIELDS.items()}
        )
    return WorkloadCost()