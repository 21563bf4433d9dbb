"""Tensor evaluation of expression trees.

Values are ``torch.float64`` tensors, either 0-dim (a single propagation
pass) or 1-D batches (sampling). Comparison and logical operators return
1.0/0.0; ``0`` and ``NaN`` count as false.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Mapping

import torch
from torch import Tensor

from dagpad.scm.expression.nodes import (
    Binary,
    Call,
    Conditional,
    Expr,
    Identifier,
    Literal,
    Unary,
)
from dagpad.scm.expression.registry import (
    get_allowed_constant,
    get_allowed_function,
    get_allowed_function_names,
    is_special_identifier,
)

DTYPE = torch.float64


def as_value(value: Tensor | float) -> Tensor:
    """Convert ``value`` to a float64 tensor without copying when possible."""
    return torch.as_tensor(value, dtype=DTYPE)


def _truthy(value: Tensor) -> Tensor:
    return (value != 0) & ~torch.isnan(value)


def _as_flag(mask: Tensor) -> Tensor:
    return mask.to(DTYPE)


_BINARY_OPERATORS: dict[str, Callable[[Tensor, Tensor], Tensor]] = {
    "+": torch.add,
    "-": torch.sub,
    "*": torch.mul,
    "/": torch.div,
    "^": torch.pow,
    "%": torch.fmod,
    ">": lambda a, b: _as_flag(a > b),
    ">=": lambda a, b: _as_flag(a >= b),
    "<": lambda a, b: _as_flag(a < b),
    "<=": lambda a, b: _as_flag(a <= b),
    "==": lambda a, b: _as_flag(a == b),
    "!=": lambda a, b: _as_flag(a != b),
    "&&": lambda a, b: _as_flag(_truthy(a) & _truthy(b)),
    "||": lambda a, b: _as_flag(_truthy(a) | _truthy(b)),
}

_UNARY_OPERATORS: dict[str, Callable[[Tensor], Tensor]] = {
    "-": torch.neg,
    "+": lambda a: a,
    "!": lambda a: _as_flag(~_truthy(a)),
}


@dataclass(frozen=True)
class Scope:
    """Identifier lookup for one evaluation.

    Attributes:
        values: Already computed variable values. Missing names read as 0.
        error: Value substituted for the special ``error`` identifier.
    """

    values: Mapping[str, Tensor | float] = field(default_factory=dict)
    error: Tensor | float = 0.0

    def resolve(self, name: str) -> Tensor:
        constant = get_allowed_constant(name)
        if constant is not None:
            return as_value(constant)
        if is_special_identifier(name):
            return as_value(self.error)
        return as_value(self.values.get(name, 0.0))


def evaluate_expression(node: Expr | None, scope: Scope) -> Tensor:
    """Evaluate ``node`` against ``scope``.

    An absent expression evaluates to 0.

    Raises:
        ValueError: On an operator, callee or node type outside the grammar.
    """
    if node is None:
        return as_value(0.0)
    return _evaluate(node, scope)


def _evaluate(node: Expr, scope: Scope) -> Tensor:
    if isinstance(node, Literal):
        return as_value(node.value)

    if isinstance(node, Identifier):
        return scope.resolve(node.name)

    if isinstance(node, Unary):
        unary = _UNARY_OPERATORS.get(node.operator)
        if unary is None:
            raise ValueError(f'Unsupported unary operator "{node.operator}".')
        return unary(_evaluate(node.argument, scope))

    if isinstance(node, Binary):
        binary = _BINARY_OPERATORS.get(node.operator)
        if binary is None:
            raise ValueError(f'Unsupported operator "{node.operator}".')
        return binary(_evaluate(node.left, scope), _evaluate(node.right, scope))

    if isinstance(node, Conditional):
        test = _evaluate(node.test, scope)
        consequent = _evaluate(node.consequent, scope)
        alternate = _evaluate(node.alternate, scope)
        return torch.where(_truthy(test), consequent, alternate)

    if isinstance(node, Call):
        if not isinstance(node.callee, Identifier):
            raise ValueError("Only simple function calls like sin(x) are allowed.")
        name = node.callee.name
        function = get_allowed_function(name)
        if function is None:
            allowed = ", ".join(get_allowed_function_names())
            raise ValueError(f'Function "{name}" is not allowed. Supported: {allowed}.')
        if len(node.arguments) != 1:
            raise ValueError(
                f'Function "{name}" expects exactly one argument, '
                f"got {len(node.arguments)}."
            )
        return function(_evaluate(node.arguments[0], scope))

    raise ValueError(f"Unsupported expression node {type(node).__name__!r}.")
