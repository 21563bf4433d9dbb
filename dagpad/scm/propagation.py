"""Single-pass evaluation of an SCM under interventions and injected noise."""

from __future__ import annotations

from typing import Iterable, Mapping

from torch import Tensor

from dagpad.scm.errors import EvaluationError
from dagpad.scm.expression.interpreter import Scope, as_value, evaluate_expression
from dagpad.scm.noise import NoiseState, is_noise_id
from dagpad.scm.parser import ModelEntry
from dagpad.scm.topology import topo_sort


def propagate(
    model: Mapping[str, ModelEntry],
    order: Iterable[str],
    values: dict[str, Tensor],
    clamp_map: Mapping[str, bool] | None = None,
    noise_state: NoiseState | None = None,
) -> dict[str, Tensor]:
    """Evaluate every unclamped node of ``order`` into ``values`` in place.

    ``values`` must already hold a seed for each clamped node; other nodes
    are overwritten. Works on 0-dim and batched tensors alike.

    Raises:
        EvaluationError: If evaluating a node's expression fails.
    """
    clamp_map = clamp_map or {}
    noise_state = noise_state or NoiseState()

    for name in order:
        if clamp_map.get(name):
            continue

        entry = model.get(name)
        if entry is None and is_noise_id(name):
            values[name] = as_value(noise_state.by_node.get(name, 0.0))
            continue
        if entry is None or entry.expression is None:
            values[name] = as_value(noise_state.value_for(name))
            continue

        scope = Scope(values=values, error=noise_state.value_for(name))
        try:
            values[name] = evaluate_expression(entry.expression, scope)
        except Exception as exc:
            raise EvaluationError(
                f'Error evaluating "{name} = {entry.source}": {exc}',
                variable=name,
                source=entry.source,
            ) from exc

    return values


def compute_values(
    model: Mapping[str, ModelEntry],
    eqs: Mapping[str, Iterable[str]],
    current_values: Mapping[str, float],
    clamp_map: Mapping[str, bool] | None = None,
    noise_state: NoiseState | None = None,
) -> dict[str, float]:
    """Propagate values through the SCM once, in topological order.

    Args:
        model: Parsed model, see :func:`dagpad.scm.parser.parse_scm`.
        eqs: Dependency graph, see :func:`dagpad.scm.topology.deps_from_model`.
        current_values: Seed values. Variables missing here start at 0.
        clamp_map: Variables held at their seed value (``do()`` interventions).
        noise_state: Optional injected noise, used for ``error`` and for
            variables without an equation.

    Returns:
        A new mapping with a value for every seeded or graph variable.

    Raises:
        CycleError: If ``eqs`` is not a DAG.
        EvaluationError: If a variable's expression cannot be evaluated.
    """
    order = topo_sort(eqs)
    values = {name: as_value(value) for name, value in current_values.items()}
    for name in order:
        values.setdefault(name, as_value(0.0))

    propagate(model, order, values, clamp_map=clamp_map, noise_state=noise_state)
    return {name: float(value) for name, value in values.items()}
