"""Text-to-text graph edits on SCM equations.

Each operation takes the full SCM text and returns new text; the input is
never modified and a failing edit raises without producing partial output.
Linear equations are edited through their :class:`~dagpad.scm.linear.LinearSummary`
and re-serialized; any other right-hand side falls back to whole-word text
substitution of the identifier.
"""

from __future__ import annotations

import logging
import math
import re
from dataclasses import dataclass

from dagpad.scm.errors import MutationError, ParseError
from dagpad.scm.expression.grammar import parse_expression
from dagpad.scm.expression.nodes import Expr
from dagpad.scm.linear import (
    LinearSummary,
    build_linear_expression,
    get_linear_summary,
    update_linear_coefficient,
)
from dagpad.scm.parser import ASSIGNMENT_RE, parse_scm, split_statements

logger = logging.getLogger(__name__)

NAME_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


@dataclass(frozen=True)
class Assignment:
    name: str
    rhs: str


def _parse_assignments(text: str) -> list[Assignment]:
    assignments = []
    for line in split_statements(text):
        match = ASSIGNMENT_RE.match(line)
        if not match:
            raise ParseError(f'Cannot parse: "{line}"')
        assignments.append(Assignment(name=match.group(1), rhs=match.group(2).strip()))
    return assignments


def _serialize(assignments: list[Assignment]) -> str:
    return "\n".join(f"{entry.name} = {entry.rhs}" for entry in assignments)


def _find_index(assignments: list[Assignment], name: str) -> int:
    for index, entry in enumerate(assignments):
        if entry.name == name:
            return index
    return -1


def _parse_rhs(rhs: str) -> Expr | None:
    if not rhs or not rhs.strip():
        return None
    return parse_expression(rhs)


def _ensure_valid_name(name: str) -> str:
    trimmed = str(name or "").strip()
    if not NAME_RE.match(trimmed):
        raise MutationError(
            "Names must start with a letter or underscore and contain only "
            "letters, numbers, or underscores."
        )
    return trimmed


def _word_pattern(name: str) -> re.Pattern[str]:
    return re.compile(rf"\b{re.escape(name)}\b")


def _replace_identifier(rhs: str, old: str, new: str) -> str:
    return _word_pattern(old).sub(lambda _: new, rhs)


def _zero_term(rhs: str, name: str) -> str:
    """Drop ``name`` from ``rhs``: structurally if linear in it, else textually."""
    summary = get_linear_summary(_parse_rhs(rhs))
    if summary is not None and name in summary.terms:
        return build_linear_expression(update_linear_coefficient(summary, name, 0.0))
    return _replace_identifier(rhs, name, "0")


def is_valid_scm_name(name: str) -> bool:
    return bool(NAME_RE.match(str(name or "").strip()))


def add_node_to_scm(text: str, name: str) -> str:
    """Append ``name = 0``.

    Raises:
        MutationError: If ``name`` is invalid or already assigned.
    """
    node = _ensure_valid_name(name)
    assignments = _parse_assignments(text)
    if _find_index(assignments, node) >= 0:
        raise MutationError(f'Variable "{node}" already exists.')
    assignments.append(Assignment(name=node, rhs="0"))
    logger.debug("Added node %s", node)
    return _serialize(assignments)


def rename_node_in_scm(text: str, previous_name: str, next_name: str) -> str:
    """Rename a variable in its assignment and in every right-hand side.

    Raises:
        MutationError: If either name is invalid, ``previous_name`` appears
            nowhere, or ``next_name`` is already assigned.
    """
    old = _ensure_valid_name(previous_name)
    new = _ensure_valid_name(next_name)
    if old == new:
        return text

    assignments = _parse_assignments(text)
    names = {entry.name for entry in assignments}
    pattern = _word_pattern(old)
    if old not in names and not any(pattern.search(entry.rhs) for entry in assignments):
        raise MutationError(f'Variable "{old}" does not exist.')
    if new in names:
        raise MutationError(f'Variable "{new}" already exists.')

    renamed = [
        Assignment(
            name=new if entry.name == old else entry.name,
            rhs=_replace_identifier(entry.rhs, old, new),
        )
        for entry in assignments
    ]
    logger.debug("Renamed node %s -> %s", old, new)
    return _serialize(renamed)


def remove_node_from_scm(text: str, name: str) -> str:
    """Delete a variable and zero every reference to it.

    Parents of the removed variable that would otherwise disappear from the
    model are kept as ``parent = 0``.

    Raises:
        MutationError: If ``name`` is invalid or appears nowhere.
    """
    node = _ensure_valid_name(name)
    parsed = parse_scm(text)
    entry = parsed.model.get(node)
    removed_dependencies = entry.dependencies if entry is not None else ()

    pattern = _word_pattern(node)
    removed_assignment = False
    removed_reference = False
    remaining: list[Assignment] = []
    for assignment in _parse_assignments(text):
        if assignment.name == node:
            removed_assignment = True
            continue
        if not pattern.search(assignment.rhs):
            remaining.append(assignment)
            continue
        removed_reference = True
        remaining.append(
            Assignment(name=assignment.name, rhs=_zero_term(assignment.rhs, node))
        )

    if not removed_assignment and not removed_reference:
        raise MutationError(f'Variable "{node}" does not exist.')

    if removed_dependencies:
        still_present = parse_scm(_serialize(remaining)).all_vars
        for dependency in removed_dependencies:
            if dependency != node and dependency not in still_present:
                remaining.append(Assignment(name=dependency, rhs="0"))

    logger.debug("Removed node %s", node)
    return _serialize(remaining)


def remove_edge_from_scm(text: str, parent: str, child: str) -> str:
    """Remove the ``parent -> child`` edge by zeroing the parent's term.

    Raises:
        MutationError: If a name is invalid, ``child`` has no assignment, or
            ``child``'s equation does not reference ``parent``.
    """
    parent_id = _ensure_valid_name(parent)
    child_id = _ensure_valid_name(child)

    assignments = _parse_assignments(text)
    index = _find_index(assignments, child_id)
    if index < 0:
        raise MutationError(f'Variable "{child_id}" does not exist.')

    rhs = assignments[index].rhs
    if not _word_pattern(parent_id).search(rhs):
        raise MutationError(f'No edge from "{parent_id}" to "{child_id}".')

    assignments[index] = Assignment(name=child_id, rhs=_zero_term(rhs, parent_id))
    if _find_index(assignments, parent_id) < 0:
        if parent_id not in parse_scm(_serialize(assignments)).all_vars:
            assignments.append(Assignment(name=parent_id, rhs="0"))

    logger.debug("Removed edge %s -> %s", parent_id, child_id)
    return _serialize(assignments)


def upsert_edge_coefficient(
    text: str,
    parent: str,
    child: str,
    coefficient: float,
    require_existing_term: bool = False,
) -> str:
    """Set the linear coefficient of ``parent`` in ``child``'s equation.

    ``child``'s equation is created when missing. A zero coefficient removes
    the term.

    Args:
        text: SCM text.
        parent: Variable whose term is edited.
        child: Variable whose equation is edited.
        coefficient: New coefficient; must be finite.
        require_existing_term: Refuse to introduce a new term, so an edit
            meant for an existing edge cannot add a causal arrow.

    Raises:
        MutationError: On an invalid name or coefficient, a non-linear target
            equation, or a missing term when ``require_existing_term`` is set.
    """
    parent_id = _ensure_valid_name(parent)
    child_id = _ensure_valid_name(child)
    if not isinstance(coefficient, (int, float)) or not math.isfinite(coefficient):
        raise MutationError("Coefficient must be a finite number.")

    assignments = _parse_assignments(text)
    index = _find_index(assignments, child_id)
    rhs = assignments[index].rhs if index >= 0 else ""
    expression = _parse_rhs(rhs)
    summary = get_linear_summary(expression) if expression is not None else LinearSummary()
    if summary is None:
        raise MutationError("Only simple linear equations can be edited from the DAG.")

    if require_existing_term and parent_id not in summary.terms:
        raise MutationError(f"No linear term for {parent_id} exists in {child_id}.")

    next_rhs = build_linear_expression(
        update_linear_coefficient(summary, parent_id, float(coefficient))
    )
    if index >= 0:
        assignments[index] = Assignment(name=child_id, rhs=next_rhs)
    else:
        assignments.append(Assignment(name=child_id, rhs=next_rhs))

    logger.debug("Set %s -> %s coefficient to %s", parent_id, child_id, coefficient)
    return _serialize(assignments)
