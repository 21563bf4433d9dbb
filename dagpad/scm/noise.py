"""Noise identifiers and the noise-augmented dependency graph.

Every real variable ``X`` may carry an exogenous noise term, represented by
the parentless node ``noise:X``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Mapping

from torch import Tensor

NOISE_PREFIX = "noise:"


@dataclass(frozen=True)
class NoiseState:
    """Injected noise values keyed by noise id (``noise:X``)."""

    by_node: Mapping[str, Tensor | float] = field(default_factory=dict)

    def value_for(self, name: str) -> Tensor | float:
        """Noise injected into variable ``name``, or 0."""
        return self.by_node.get(build_noise_id(name), 0.0)


@dataclass(frozen=True)
class NoiseAugmentedGraph:
    """Result of :func:`build_noise_augmented_graph`."""

    eqs: dict[str, set[str]]
    all_vars: set[str]
    noise_nodes: set[str]


def build_noise_id(base_id: str) -> str:
    return f"{NOISE_PREFIX}{base_id}"


def is_noise_id(node_id: str) -> bool:
    return str(node_id or "").startswith(NOISE_PREFIX)


def get_noise_target_id(noise_id: str) -> str:
    """Variable a noise node feeds, or ``""`` for ordinary ids."""
    if not is_noise_id(noise_id):
        return ""
    return str(noise_id)[len(NOISE_PREFIX) :]


def build_noise_label(noise_id: str) -> str:
    """Display label of a noise node, e.g. ``noise:X -> U_X``."""
    target = get_noise_target_id(noise_id)
    return f"U_{target}" if target else str(noise_id or "")


def build_noise_augmented_graph(
    eqs: Mapping[str, Iterable[str]], all_vars: Iterable[str]
) -> NoiseAugmentedGraph:
    """Give every real variable an extra parentless ``noise:`` parent.

    Args:
        eqs: Mapping from each node to its parents.
        all_vars: Every variable of the model.

    Returns:
        The augmented graph, its variable set, and the added noise nodes.
    """
    base_vars = list(dict.fromkeys(all_vars or ()))
    next_eqs: dict[str, set[str]] = {}
    noise_nodes: set[str] = set()

    for child, parents in (eqs or {}).items():
        next_parents = set(parents or ())
        if not is_noise_id(child):
            noise_id = build_noise_id(child)
            next_parents.add(noise_id)
            noise_nodes.add(noise_id)
        next_eqs[child] = next_parents

    for node in base_vars:
        next_eqs.setdefault(node, set())
        if not is_noise_id(node):
            noise_id = build_noise_id(node)
            next_eqs[node].add(noise_id)
            noise_nodes.add(noise_id)

    for noise_id in sorted(noise_nodes):
        next_eqs.setdefault(noise_id, set())

    return NoiseAugmentedGraph(
        eqs=next_eqs,
        all_vars=set(base_vars) | noise_nodes,
        noise_nodes=noise_nodes,
    )
