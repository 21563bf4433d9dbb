"""Affine views of expression trees.

An expression is linear when it reduces to ``constant + sum(coef * name)``.
The summary keeps the first-seen order of its terms so that rebuilding an
equation after an edit is deterministic.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field

from dagpad.scm.expression.nodes import Binary, Expr, Identifier, Literal, Unary
from dagpad.scm.expression.registry import get_allowed_constant

EPSILON = 1e-10
ROUND_PLACES = 4


@dataclass(frozen=True)
class LinearSummary:
    """Affine form ``constant + sum(terms[name] * name)``.

    Attributes:
        terms: Coefficient per variable.
        order: Variables in first-seen order, used for serialization.
        constant: The intercept.
    """

    terms: dict[str, float] = field(default_factory=dict)
    order: tuple[str, ...] = ()
    constant: float = 0.0

    def coefficient(self, name: str) -> float:
        return self.terms.get(name, 0.0)


def _is_zero(value: float) -> bool:
    return abs(value) < EPSILON


def _create(
    terms: dict[str, float] | None = None,
    order: tuple[str, ...] = (),
    constant: float = 0.0,
) -> LinearSummary:
    return LinearSummary(
        terms=dict(terms or {}),
        order=tuple(order),
        constant=constant if math.isfinite(constant) else 0.0,
    )


def _merge(left: LinearSummary, right: LinearSummary, sign: float = 1.0) -> LinearSummary:
    terms = dict(left.terms)
    order = list(left.order)
    for name, coef in right.terms.items():
        if name not in terms:
            order.append(name)
        terms[name] = terms.get(name, 0.0) + coef * sign
    return _create(terms, tuple(order), left.constant + right.constant * sign)


def _scale(summary: LinearSummary, scale: float) -> LinearSummary | None:
    if not math.isfinite(scale):
        return None
    terms = {name: coef * scale for name, coef in summary.terms.items()}
    return _create(terms, summary.order, summary.constant * scale)


def _reduce(node: Expr | None) -> LinearSummary | None:
    if node is None:
        return None

    if isinstance(node, Literal):
        if not math.isfinite(node.value):
            return None
        return _create(constant=node.value)

    if isinstance(node, Identifier):
        constant = get_allowed_constant(node.name)
        if constant is not None:
            return _create(constant=constant)
        return _create({node.name: 1.0}, (node.name,))

    if isinstance(node, Unary):
        inner = _reduce(node.argument)
        if inner is None:
            return None
        if node.operator == "+":
            return inner
        if node.operator == "-":
            return _scale(inner, -1.0)
        return None

    if isinstance(node, Binary):
        op = node.operator
        if op not in ("+", "-", "*", "/"):
            return None
        left = _reduce(node.left)
        right = _reduce(node.right)
        if left is None or right is None:
            return None
        if op in ("+", "-"):
            return _merge(left, right, -1.0 if op == "-" else 1.0)
        if op == "*":
            if left.terms and right.terms:
                return None
            if left.terms:
                return _scale(left, right.constant)
            if right.terms:
                return _scale(right, left.constant)
            return _create(constant=left.constant * right.constant)
        # division by a pure, nonzero constant
        if right.terms or _is_zero(right.constant):
            return None
        return _scale(left, 1.0 / right.constant)

    return None


def _normalize(summary: LinearSummary) -> LinearSummary:
    terms = {
        name: coef
        for name, coef in summary.terms.items()
        if math.isfinite(coef) and not _is_zero(coef)
    }
    order = tuple(name for name in summary.order if name in terms)
    return _create(terms, order, summary.constant)


def get_linear_summary(expression: Expr | None) -> LinearSummary | None:
    """Reduce ``expression`` to an affine form, or None if it is not affine.

    Products of two variable terms, variables in a divisor, function calls,
    comparisons and conditionals all make an expression non-linear.
    Coefficients smaller than ``1e-10`` in magnitude are dropped.
    """
    reduced = _reduce(expression)
    if reduced is None:
        return None
    return _normalize(reduced)


def get_linear_coefficient(expression: Expr | None, name: str) -> float | None:
    """Coefficient of ``name`` in ``expression``; None when not affine."""
    summary = get_linear_summary(expression)
    if summary is None:
        return None
    return summary.coefficient(name)


def update_linear_coefficient(
    summary: LinearSummary, name: str, coefficient: float
) -> LinearSummary:
    """Return a copy of ``summary`` with the term of ``name`` set or removed.

    A zero or non-finite ``coefficient`` removes the term. A new term is
    appended after the existing ones.
    """
    terms = dict(summary.terms)
    order = summary.order if name in summary.order else (*summary.order, name)
    if not math.isfinite(coefficient) or _is_zero(coefficient):
        terms.pop(name, None)
    else:
        terms[name] = coefficient
    return _normalize(_create(terms, order, summary.constant))


def format_number(value: float) -> str:
    """Round to four decimals and trim trailing zeros: ``2.50 -> "2.5"``."""
    if not math.isfinite(value):
        return "0"
    text = f"{round(value, ROUND_PLACES):.{ROUND_PLACES}f}"
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    if text in ("-0", ""):
        return "0"
    return text


def build_linear_expression(summary: LinearSummary | None) -> str:
    """Serialize ``summary`` as SCM expression text.

    Terms come in ``order``; a unit coefficient is omitted (``A``, ``-B``)
    and the constant, if nonzero, comes last. An empty summary gives ``"0"``.
    """
    if summary is None:
        return "0"
    normalized = _normalize(summary)
    pieces: list[str] = []

    for name in normalized.order:
        coef = normalized.terms[name]
        magnitude = abs(coef)
        term = name if magnitude == 1 else f"{format_number(magnitude)}*{name}"
        if not pieces:
            pieces.append(f"-{term}" if coef < 0 else term)
        else:
            pieces.append(f"{'-' if coef < 0 else '+'} {term}")

    constant = normalized.constant
    if not _is_zero(constant):
        text = format_number(abs(constant))
        if not pieces:
            pieces.append(f"-{text}" if constant < 0 else text)
        else:
            pieces.append(f"{'-' if constant < 0 else '+'} {text}")

    return " ".join(pieces) if pieces else "0"
