"""Classify diagram edges by how a control set changes X-Y paths.

For every simple undirected path between ``x`` and ``y`` whose open/blocked
status flips once the controls are applied, the edges along that path are
tagged:

- ``"good"``: a non-causal path (e.g. through a confounder) becomes blocked.
- ``"maybe"``: a directed path becomes blocked by controlling a mediator.
- ``"bad"``: a blocked path opens because a collider, or one of its
  descendants, is controlled.

An edge on several flipping paths keeps the most severe tag,
``bad > maybe > good``. Path enumeration is bounded, so the result is an
explanation aid rather than a complete d-separation test.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, Literal, Mapping

logger = logging.getLogger(__name__)

EdgeStatus = Literal["good", "maybe", "bad"]

STATUS_PRIORITY: dict[str, int] = {"bad": 3, "maybe": 2, "good": 1}

_EMPTY: frozenset[str] = frozenset()


@dataclass(frozen=True)
class PathSearchConfig:
    """Bounds on simple-path enumeration.

    Attributes:
        max_depth: Maximum number of nodes in a path (at least 2).
        max_paths: Maximum number of paths collected (at least 1).
    """

    max_depth: int = 8
    max_paths: int = 250


def build_children_map(eqs: Mapping[str, Iterable[str]]) -> dict[str, set[str]]:
    """Reverse a parent map into a children map covering every node."""
    children: dict[str, set[str]] = {}
    for child, parents in eqs.items():
        children.setdefault(child, set())
        for parent in parents or ():
            children.setdefault(parent, set()).add(child)
    return children


def build_descendants_map(children_map: Mapping[str, Iterable[str]]) -> dict[str, set[str]]:
    """Map each node to all of its descendants.

    A node reached again while its own descendants are being collected
    contributes nothing, so cyclic input terminates.
    """
    memo: dict[str, set[str]] = {}
    visiting: set[str] = set()

    def visit(node: str) -> set[str]:
        if node in memo:
            return memo[node]
        if node in visiting:
            return set()
        visiting.add(node)
        descendants: set[str] = set()
        for child in children_map.get(node, ()):
            descendants.add(child)
            descendants |= visit(child)
        visiting.discard(node)
        memo[node] = descendants
        return descendants

    for node in children_map:
        visit(node)
    return memo


def build_undirected_adjacency(
    eqs: Mapping[str, Iterable[str]],
    exclude_nodes: Iterable[str] | None = None,
) -> dict[str, set[str]]:
    """Skeleton of the graph, without ``exclude_nodes`` and their edges."""
    excluded = set(exclude_nodes or ())
    adjacency: dict[str, set[str]] = {}
    for child, parents in eqs.items():
        if child not in excluded:
            adjacency.setdefault(child, set())
        for parent in parents or ():
            if child in excluded or parent in excluded:
                continue
            adjacency.setdefault(child, set()).add(parent)
            adjacency.setdefault(parent, set()).add(child)
    return adjacency


def find_simple_paths(
    adjacency: Mapping[str, Iterable[str]],
    start: str,
    end: str,
    config: PathSearchConfig | None = None,
) -> list[list[str]]:
    """Enumerate simple paths from ``start`` to ``end``.

    Neighbors are visited in lexicographic order, so the result is
    deterministic. Enumeration stops at ``config.max_paths`` paths and never
    extends a path beyond ``config.max_depth`` nodes.
    """
    config = config or PathSearchConfig()
    results: list[list[str]] = []
    if start not in adjacency or end not in adjacency:
        return results

    max_nodes = max(2, config.max_depth)
    max_count = max(1, config.max_paths)

    def walk(node: str, path: list[str], visited: set[str]) -> None:
        if len(results) >= max_count or len(path) > max_nodes:
            return
        if node == end:
            results.append(list(path))
            return
        for neighbor in sorted(adjacency.get(node, ())):
            if neighbor in visited:
                continue
            visited.add(neighbor)
            path.append(neighbor)
            walk(neighbor, path, visited)
            path.pop()
            visited.discard(neighbor)
            if len(results) >= max_count:
                return

    walk(start, [start], {start})
    if len(results) >= max_count:
        logger.warning(
            "Path enumeration between %s and %s stopped at max_paths=%d",
            start,
            end,
            max_count,
        )
    return results


def is_directed_path(path: list[str], parents_map: Mapping[str, Iterable[str]]) -> bool:
    """Whether every edge of ``path`` points the same way."""
    if len(path) < 2:
        return False
    forward = True
    backward = True
    for current, following in zip(path, path[1:]):
        if current not in parents_map.get(following, _EMPTY):
            forward = False
        if following not in parents_map.get(current, _EMPTY):
            backward = False
        if not forward and not backward:
            return False
    return forward or backward


def is_path_open(
    path: list[str],
    controls: Iterable[str],
    parents_map: Mapping[str, Iterable[str]],
    descendants_map: Mapping[str, Iterable[str]],
) -> bool:
    """Whether ``path`` transmits association given ``controls``.

    A collider blocks unless it or one of its descendants is controlled; any
    other interior node blocks exactly when it is controlled. Paths without
    interior nodes are always open.
    """
    if len(path) <= 2:
        return True
    control_set = set(controls)

    for previous, node, following in zip(path, path[1:], path[2:]):
        parents = parents_map.get(node, _EMPTY)
        if previous in parents and following in parents:
            if node in control_set:
                continue
            if control_set.isdisjoint(descendants_map.get(node, _EMPTY)):
                return False
        elif node in control_set:
            return False
    return True


def _edge_key(left: str, right: str, parents_map: Mapping[str, Iterable[str]]) -> str | None:
    if left in parents_map.get(right, _EMPTY):
        return f"{left}->{right}"
    if right in parents_map.get(left, _EMPTY):
        return f"{right}->{left}"
    return None


def _apply_status(edge_status: dict[str, EdgeStatus], key: str, status: EdgeStatus) -> None:
    existing = edge_status.get(key)
    if existing is None or STATUS_PRIORITY[status] > STATUS_PRIORITY[existing]:
        edge_status[key] = status


def compute_edge_dsep_map(
    eqs: Mapping[str, Iterable[str]] | None,
    x: str,
    y: str,
    controls: Iterable[str] = (),
    exclude_nodes: Iterable[str] | None = None,
    config: PathSearchConfig | None = None,
) -> dict[str, EdgeStatus]:
    """Tag the edges whose paths between ``x`` and ``y`` change under ``controls``.

    Args:
        eqs: Mapping from each node to its parents.
        x: First endpoint (e.g. the treatment).
        y: Second endpoint (e.g. the outcome).
        controls: Variables proposed as statistical controls.
        exclude_nodes: Nodes ignored entirely, such as noise nodes.
        config: Path enumeration bounds.

    Returns:
        Mapping from ``"parent->child"`` to ``"good"``, ``"maybe"`` or
        ``"bad"``. Edges on no flipping path are absent.
    """
    if not x or not y or x == y:
        return {}
    excluded = set(exclude_nodes or ())
    if x in excluded or y in excluded:
        return {}

    control_set = {node for node in controls if node and node not in excluded}
    if not control_set:
        return {}

    parents_map = {child: set(parents or ()) for child, parents in (eqs or {}).items()}
    descendants_map = build_descendants_map(build_children_map(parents_map))
    adjacency = build_undirected_adjacency(parents_map, excluded)
    paths = find_simple_paths(adjacency, x, y, config)
    logger.debug("Found %d paths between %s and %s", len(paths), x, y)

    edge_status: dict[str, EdgeStatus] = {}
    for path in paths:
        open_without = is_path_open(path, _EMPTY, parents_map, descendants_map)
        open_with = is_path_open(path, control_set, parents_map, descendants_map)
        if open_without == open_with:
            continue

        status: EdgeStatus
        if open_with:
            status = "bad"
        elif is_directed_path(path, parents_map):
            status = "maybe"
        else:
            status = "good"

        for left, right in zip(path, path[1:]):
            key = _edge_key(left, right, parents_map)
            if key is not None:
                _apply_status(edge_status, key, status)

    return edge_status


class EdgeStatusMixin:
    """Mixin providing edge classification for a parsed SCM.

    This mixin requires the class to have:
        - eqs: dict[str, set[str]] - mapping of variables to their parents
    """

    eqs: "dict[str, set[str]]"

    def edge_status(
        self,
        x: str,
        y: str,
        controls: Iterable[str] = (),
        config: PathSearchConfig | None = None,
    ) -> dict[str, EdgeStatus]:
        """Classify edges affected by controlling ``controls`` between ``x`` and ``y``."""
        return compute_edge_dsep_map(self.eqs, x, y, controls=controls, config=config)
