"""Dependency graph derivation and topological ordering."""

from __future__ import annotations

import json
from collections import deque
from typing import Iterable, Mapping

from dagpad.scm.errors import CycleError
from dagpad.scm.parser import ModelEntry

CYCLE_MESSAGE = "SCM contains a cycle (not a DAG)."


def deps_from_model(model: Mapping[str, ModelEntry] | None) -> dict[str, set[str]]:
    """Map each variable to the set of its direct parents."""
    if not model:
        return {}
    return {name: set(entry.dependencies) for name, entry in model.items()}


def _node_ids(eqs: Mapping[str, Iterable[str]]) -> list[str]:
    """Graph keys in order, followed by parents that have no own entry."""
    nodes = dict.fromkeys(eqs)
    for parents in eqs.values():
        for parent in parents:
            nodes.setdefault(parent, None)
    return list(nodes)


def topo_sort(eqs: Mapping[str, Iterable[str]] | None) -> list[str]:
    """Order nodes so that every parent precedes its children (Kahn's algorithm).

    Zero in-degree nodes are processed first-in first-out, in graph key order,
    so the result is deterministic for a given graph.

    Args:
        eqs: Mapping from each node to its parents.

    Returns:
        Nodes ordered from sources to sinks.

    Raises:
        CycleError: If the graph contains a directed cycle.
    """
    graph = eqs or {}
    nodes = _node_ids(graph)
    in_degree = {node: 0 for node in nodes}
    children: dict[str, list[str]] = {node: [] for node in nodes}
    for child, parents in graph.items():
        for parent in set(parents):
            in_degree[child] += 1
            children[parent].append(child)

    queue = deque(node for node in nodes if in_degree[node] == 0)
    order: list[str] = []
    while queue:
        node = queue.popleft()
        order.append(node)
        for child in children[node]:
            in_degree[child] -= 1
            if in_degree[child] == 0:
                queue.append(child)

    if len(order) != len(nodes):
        raise CycleError(CYCLE_MESSAGE)
    return order


def would_create_cycle(
    eqs: Mapping[str, Iterable[str]], source: str, target: str
) -> bool:
    """Whether adding the edge ``source -> target`` would close a directed cycle."""
    if not source or not target:
        return False
    if source == target:
        return True

    adjacency: dict[str, set[str]] = {}
    for child, parents in eqs.items():
        for parent in parents:
            adjacency.setdefault(parent, set()).add(child)

    stack = [target]
    visited: set[str] = set()
    while stack:
        node = stack.pop()
        if node == source:
            return True
        if node in visited:
            continue
        visited.add(node)
        stack.extend(child for child in adjacency.get(node, ()) if child not in visited)
    return False


def build_graph_signature(eqs: Mapping[str, Iterable[str]] | None) -> str:
    """Canonical JSON text describing the graph structure.

    Two graphs with the same nodes and parent sets share a signature,
    whatever their insertion order.
    """
    if not eqs:
        return "[]"
    entries = sorted([child, sorted(parents)] for child, parents in eqs.items())
    return json.dumps(entries, separators=(",", ":"))
