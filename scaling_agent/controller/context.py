"""Resource quantities and the context blocks embedded in the scaling prompt."""

from __future__ import annotations

import functools
import re
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import datetime
from decimal import ROUND_UP, Decimal, InvalidOperation, localcontext

DECIMAL_SI = "DecimalSI"
BINARY_SI = "BinarySI"
DECIMAL_EXPONENT = "DecimalExponent"

_BINARY_SUFFIXES = {"Ki": 1, "Mi": 2, "Gi": 3, "Ti": 4, "Pi": 5, "Ei": 6}
_BINARY_NAMES = {power: suffix for suffix, power in _BINARY_SUFFIXES.items()}
_BINARY_NAMES[0] = ""
_DECIMAL_SUFFIXES = {
    "n": -9,
    "u": -6,
    "m": -3,
    "": 0,
    "k": 3,
    "M": 6,
    "G": 9,
    "T": 12,
    "P": 15,
    "E": 18,
}
_DECIMAL_NAMES = {exp: suffix for suffix, exp in _DECIMAL_SUFFIXES.items()}
_QUANTITY_RE = re.compile(r"([+-]?(?:\d+\.?\d*|\.\d+))([a-zA-Z]*|[eE][+-]?\d+)")
_NANO = Decimal("1e-9")


@functools.total_ordering
@dataclass(frozen=True, eq=False)
class Quantity:
    """A resource amount such as ``500m`` CPU or ``512Mi`` memory.

    Values are kept to nano precision; ``str()`` gives the canonical form.
    """

    value: Decimal = Decimal(0)
    format: str = DECIMAL_SI

    def is_zero(self) -> bool:
        """True if the amount is zero."""
        return self.value == 0

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Quantity):
            return NotImplemented
        return self.value == other.value

    def __lt__(self, other: Quantity) -> bool:
        if not isinstance(other, Quantity):
            return NotImplemented
        return self.value < other.value

    def __hash__(self) -> int:
        return hash(self.value)

    def __str__(self) -> str:
        value = self.value
        if value == 0:
            return "0"
        sign = "-" if value < 0 else ""
        magnitude = abs(value)

        fmt = self.format
        if fmt == BINARY_SI and (magnitude != magnitude.to_integral_value() or magnitude < 1024):
            fmt = DECIMAL_SI

        if fmt == BINARY_SI:
            mantissa = int(magnitude)
            power = 0
            while power < 6 and mantissa % 1024 == 0:
                mantissa //= 1024
                power += 1
            return f"{sign}{mantissa}{_BINARY_NAMES[power]}"

        with localcontext() as ctx:
            ctx.prec = 80
            mantissa = int(magnitude * Decimal(10) ** 9)
        exponent = -9
        while exponent < 18 and mantissa % 1000 == 0:
            mantissa //= 1000
            exponent += 3
        if fmt == DECIMAL_EXPONENT:
            suffix = "" if exponent == 0 else f"e{exponent}"
        else:
            suffix = _DECIMAL_NAMES[exponent]
        return f"{sign}{mantissa}{suffix}"


def parse_quantity(text: str) -> Quantity:
    """Parse a quantity string; raise ValueError if it is malformed."""
    match = _QUANTITY_RE.fullmatch(text or "")
    if match is None:
        raise ValueError(f"quantities must match the regular expression: {text!r}")
    number, suffix = match.groups()

    with localcontext() as ctx:
        ctx.prec = 80
        try:
            amount = Decimal(number)
        except InvalidOperation as exc:
            raise ValueError(f"invalid quantity number: {text!r}") from exc

        if suffix in _BINARY_SUFFIXES:
            fmt = BINARY_SI
            amount *= Decimal(1024) ** _BINARY_SUFFIXES[suffix]
        elif suffix in _DECIMAL_SUFFIXES:
            fmt = DECIMAL_SI
            amount *= Decimal(10) ** _DECIMAL_SUFFIXES[suffix]
        elif suffix[:1] in ("e", "E") and len(suffix) > 1:
            fmt = DECIMAL_EXPONENT
            amount *= Decimal(10) ** int(suffix[1:])
        else:
            raise ValueError(f"unable to parse quantity's suffix: {text!r}")

        amount = amount.quantize(_NANO, rounding=ROUND_UP)
        if amount == 0:
            amount = Decimal(0)
    return Quantity(value=amount.normalize() if amount != 0 else amount, format=fmt)


@dataclass
class VerticalConstraints:
    """Bounds on vertical resource recommendations."""

    min_cpu_request: Quantity = field(default_factory=Quantity)
    max_cpu_request: Quantity = field(default_factory=Quantity)
    min_memory_request: Quantity = field(default_factory=Quantity)
    max_memory_request: Quantity = field(default_factory=Quantity)


@dataclass
class VerticalScalingConfig:
    """Vertical scaling settings of a policy."""

    enabled: bool = False
    resize_policy: str = ""
    constraints: VerticalConstraints = field(default_factory=VerticalConstraints)


@dataclass
class ResourceStatus:
    """Current requests and limits of the workload's first container."""

    cpu_request: Quantity = field(default_factory=Quantity)
    memory_request: Quantity = field(default_factory=Quantity)
    cpu_limit: Quantity = field(default_factory=Quantity)
    memory_limit: Quantity = field(default_factory=Quantity)
    last_resize_strategy: str = ""
    last_resize_time: datetime | None = None


@dataclass
class VerticalDecision:
    """Parsed vertical resource changes ready for actuation."""

    cpu_request: Quantity = field(default_factory=Quantity)
    memory_request: Quantity = field(default_factory=Quantity)
    cpu_limit: Quantity = field(default_factory=Quantity)
    memory_limit: Quantity = field(default_factory=Quantity)
    resize_strategy: str = ""


@dataclass
class DecisionOutcome:
    """How an earlier decision worked out."""

    record_id: str = ""
    effective: bool = False
    cpu_before: float = 0.0
    cpu_after: float = 0.0
    latency_before: float = 0.0
    latency_after: float = 0.0


@dataclass
class NodeContext:
    """Cluster capacity and pressure figures."""

    ready_nodes: int = 0
    total_nodes: int = 0
    pending_pods: int = 0
    node_pools: list[str] = field(default_factory=list)
    cluster_cpu_requested: float = 0.0
    cluster_cpu_capacity: float = 0.0
    cluster_mem_requested: float = 0.0
    cluster_mem_capacity: float = 0.0


@dataclass
class FeedbackStatus:
    """Summary of evaluated decision outcomes."""

    total_decisions: int = 0
    effective_rate: float = 0.0


def _parse_field(name: str, text: str) -> Quantity:
    try:
        return parse_quantity(text)
    except ValueError as exc:
        raise ValueError(f"parse {name}: {exc}") from exc


def build_vertical_decision(
    config: VerticalScalingConfig | None, proposal
) -> VerticalDecision | None:
    """Turn a proposal into a decision; None if vertical scaling has nothing to do.

    Raises ValueError if the proposal is incomplete or a quantity is malformed.
    """
    if config is None or not config.enabled or proposal is None:
        return None
    if not any(
        (proposal.cpu_request, proposal.memory_request, proposal.cpu_limit, proposal.memory_limit)
    ):
        return None
    if not proposal.cpu_request or not proposal.memory_request:
        raise ValueError("vertical recommendation requires both cpu_request and memory_request")

    decision = VerticalDecision(
        cpu_request=_parse_field("cpu_request", proposal.cpu_request),
        memory_request=_parse_field("memory_request", proposal.memory_request),
        resize_strategy=proposal.resize_strategy or config.resize_policy,
    )
    if proposal.cpu_limit:
        decision.cpu_limit = _parse_field("cpu_limit", proposal.cpu_limit)
    if proposal.memory_limit:
        decision.memory_limit = _parse_field("memory_limit", proposal.memory_limit)
    return decision


def build_vertical_context(
    resources: ResourceStatus | None, config: VerticalScalingConfig | None
) -> str:
    """Describe current resources and bounds; empty when vertical scaling is off."""
    if resources is None or config is None or not config.enabled:
        return ""
    lines = [
        f"- Resize policy: {config.resize_policy}",
        f"- Current CPU request: {resources.cpu_request}",
        f"- Current memory request: {resources.memory_request}",
        f"- Current CPU limit: {resources.cpu_limit}",
        f"- Current memory limit: {resources.memory_limit}",
    ]
    c = config.constraints
    if not c.min_cpu_request.is_zero() or not c.max_cpu_request.is_zero():
        lines.append(f"- CPU request bounds: {c.min_cpu_request} to {c.max_cpu_request}")
    if not c.min_memory_request.is_zero() or not c.max_memory_request.is_zero():
        lines.append(f"- Memory request bounds: {c.min_memory_request} to {c.max_memory_request}")
    return "Vertical scaling context:\n" + "\n".join(lines)


def build_predictive_context(
    cpu_pred: float, cpu_conf: float, queue_pred: float, queue_conf: float
) -> str:
    """Describe the one-hour forecasts; empty if there are none."""
    lines = []
    if cpu_pred > 0 or cpu_conf > 0:
        lines.append(f"- CPU in 1h: {cpu_pred:.1f}% (confidence {cpu_conf:.2f})")
    if queue_pred > 0 or queue_conf > 0:
        lines.append(f"- Queue depth in 1h: {queue_pred:.0f} (confidence {queue_conf:.2f})")
    if not lines:
        return ""
    return "Predictions:\n" + "\n".join(lines)


def summarize_feedback(outcomes: Sequence[DecisionOutcome]) -> FeedbackStatus | None:
    """Count outcomes and their effective share; None if there are none."""
    if not outcomes:
        return None
    effective = sum(1 for outcome in outcomes if outcome.effective)
    return FeedbackStatus(
        total_decisions=len(outcomes), effective_rate=effective / len(outcomes)
    )


def short_decision_id(decision_id: str) -> str:
    """First eight characters of a decision id."""
    return decision_id[:8]


def build_feedback_context(outcomes: Sequence[DecisionOutcome], include_in_prompt: int) -> str:
    """Summarise outcomes and list up to ``include_in_prompt`` of them."""
    if not outcomes or include_in_prompt <= 0:
        return ""
    effective = sum(1 for outcome in outcomes if outcome.effective)
    lines = [
        f"Feedback summary: {len(outcomes)} evaluated decisions, "
        f"{effective / len(outcomes) * 100:.0f}% effective."
    ]
    for outcome in outcomes[:include_in_prompt]:
        verdict = "effective" if outcome.effective else "ineffective"
        lines.append(
            f"- Decision {short_decision_id(outcome.record_id)} was {verdict} "
            f"(CPU {outcome.cpu_before:.1f}%→{outcome.cpu_after:.1f}%, "
            f"p95 {outcome.latency_before:.1f}ms→{outcome.latency_after:.1f}ms)"
        )
    return "\n".join(lines)


def build_node_context(node_ctx: NodeContext | None) -> str:
    """Describe cluster capacity; empty if no node context was collected."""
    if node_ctx is None:
        return ""
    cpu_pct = 0.0
    if node_ctx.cluster_cpu_capacity > 0:
        cpu_pct = node_ctx.cluster_cpu_requested / node_ctx.cluster_cpu_capacity * 100
    mem_pct = 0.0
    if node_ctx.cluster_mem_capacity > 0:
        mem_pct = node_ctx.cluster_mem_requested / node_ctx.cluster_mem_capacity * 100
    return (
        "Cluster state:\n"
        f"- Ready nodes: {node_ctx.ready_nodes}/{node_ctx.total_nodes}\n"
        f"- Pending pods: {node_ctx.pending_pods}\n"
        f"- Node pools: {len(node_ctx.node_pools)}\n"
        f"- CPU requested: {node_ctx.cluster_cpu_requested:.2f}/"
        f"{node_ctx.cluster_cpu_capacity:.2f} cores ({cpu_pct:.1f}%)\n"
        f"- Memory requested: {node_ctx.cluster_mem_requested:.0f}/"
        f"{node_ctx.cluster_mem_capacity:.0f} bytes ({mem_pct:.1f}%)"
    )