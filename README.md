# scaling_agent

The decision core of a workload autoscaler. The package takes signals from a
workload, such as CPU, memory, latency, error rate and queue depth. It then
combines advice from several layers into one safe replica count:

- **SLO evaluation**: `scaling_agent.decision.slo.evaluate_slos`,
  `any_breached` and `format_slo_context`.
- **Reactive rules**: `scaling_agent.decision.reactive.evaluate_reactive_rules`.
  The first rule that matches wins.
- **Precedence resolution**: `scaling_agent.decision.precedence.PrecedenceResolver`.
  The layers run in this order: safety, human, schedule, SLO, reactive, LLM,
  deterministic. A cost ceiling and the global bounds are applied last.
- **Validation**: `Validator.validate` enforces the step size and the min/max
  bounds. `validate_asymmetric` uses separate policies for scaling up and
  scaling down.
- **Safety**: `OscillationDetector` and `RollbackManager`.
- **Cost**: `Estimator`, `BudgetEnforcer` and `CostClient`, which reads cost
  allocation data over HTTP.
- **Coordination**: `ClusterCoordinator` limits how many workloads scale at
  the same time. `DependencyGraph` defers scaling while a dependent workload
  is changing.
- **Controller helpers**: `scaling_agent.controller` contains the steps that
  tie the pieces together within one reconcile cycle.

## Install

```
pip install .
```

## Example

```python
from scaling_agent.decision.precedence import PrecedenceInputs, PrecedenceResolver

resolved = PrecedenceResolver().resolve(
    PrecedenceInputs(
        safety_override=3,
        safety_reason="guardrail",
        llm_target=12,
        llm_reason="cpu spike",
        min_replicas=1,
        max_replicas=20,
    )
)
print(resolved.target_replicas)  # 3
print(resolved.conflicts)        # ['llm: wanted 12 but overridden by safety']
```

```python
from scaling_agent.models import ScalingDecision, Scaler
from scaling_agent.decision.validator import Validator

policy = Scaler()
policy.spec.constraints.min_replicas = 1
policy.spec.constraints.max_replicas = 20
policy.spec.constraints.max_scale_step = 3

result = Validator().validate(ScalingDecision(target_replicas=10), 4, policy)
print(result.validated_replicas, result.clamped)  # 7 True
```

## Tests

```
pip install .[test]
pytest
```