"""Parse SCM text into a per-variable model.

SCM text is a list of assignments ``NAME = EXPR`` separated by newlines or
semicolons. Names that are referenced but never assigned are hoisted into the
model as derived entries whose implicit equation is ``0``.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass

from dagpad.scm.errors import ParseError
from dagpad.scm.expression.grammar import parse_expression
from dagpad.scm.expression.nodes import (
    Binary,
    Call,
    Conditional,
    Expr,
    Identifier,
    Literal,
    Unary,
    iter_identifiers,
)
from dagpad.scm.expression.registry import (
    get_allowed_function_names,
    is_allowed_function,
    is_reserved_identifier,
)

logger = logging.getLogger(__name__)

STATEMENT_SEPARATOR_RE = re.compile(r"[;\n]")
ASSIGNMENT_RE = re.compile(r"^\s*([A-Za-z_][A-Za-z0-9_]*)\s*=\s*(.+)$")


@dataclass(frozen=True)
class ModelEntry:
    """One variable of a parsed SCM.

    Attributes:
        expression: Parsed right-hand side, or None for derived variables.
        dependencies: Variables read by ``expression``, in first-seen order.
        source: Right-hand side text as written.
        is_derived: True if the variable is only referenced, never assigned.
    """

    expression: Expr | None
    dependencies: tuple[str, ...]
    source: str
    is_derived: bool = False


@dataclass(frozen=True)
class ParseResult:
    """Output of :func:`parse_scm`."""

    model: dict[str, ModelEntry]
    all_vars: set[str]


def split_statements(text: str) -> list[str]:
    """Split SCM text into trimmed, non-empty statements."""
    return [
        line.strip()
        for line in STATEMENT_SEPARATOR_RE.split(str(text or ""))
        if line.strip()
    ]


def validate_expression(node: Expr) -> None:
    """Reject calls outside the allowed function table.

    Raises:
        ParseError: For a non-identifier callee or a disallowed function.
    """
    if isinstance(node, (Literal, Identifier)):
        return
    if isinstance(node, Unary):
        validate_expression(node.argument)
    elif isinstance(node, Binary):
        validate_expression(node.left)
        validate_expression(node.right)
    elif isinstance(node, Conditional):
        validate_expression(node.test)
        validate_expression(node.consequent)
        validate_expression(node.alternate)
    elif isinstance(node, Call):
        if not isinstance(node.callee, Identifier):
            raise ParseError("Only simple function calls like sin(x) are allowed.")
        if not is_allowed_function(node.callee.name):
            allowed = ", ".join(get_allowed_function_names())
            raise ParseError(
                f'Function "{node.callee.name}" is not allowed. Supported: {allowed}.'
            )
        for argument in node.arguments:
            validate_expression(argument)
    else:
        raise ParseError(f"Unsupported expression node {type(node).__name__!r}.")


def extract_dependencies(node: Expr) -> tuple[str, ...]:
    """Return the variable names read by ``node``, without duplicates."""
    names = (name for name in iter_identifiers(node) if not is_reserved_identifier(name))
    return tuple(dict.fromkeys(names))


def parse_scm(text: str) -> ParseResult:
    """Parse SCM text into a model covering every assigned or referenced variable.

    Args:
        text: Assignments separated by newlines or semicolons.

    Returns:
        The model, keyed by variable in assignment order followed by hoisted
        variables in first-reference order, and the set of all variables.

    Raises:
        ParseError: On a malformed statement, a duplicate assignment, or an
            invalid right-hand side.
    """
    model: dict[str, ModelEntry] = {}
    seen: dict[str, None] = {}

    for line in split_statements(text):
        match = ASSIGNMENT_RE.match(line)
        if not match:
            raise ParseError(f'Cannot parse: "{line}"')

        name, rhs = match.group(1), match.group(2).strip()
        if name in model:
            raise ParseError(f"Duplicate definition for {name}")

        try:
            expression = parse_expression(rhs)
            validate_expression(expression)
        except ParseError as exc:
            raise ParseError(f'{exc} In line: "{line}"') from exc

        dependencies = extract_dependencies(expression)
        model[name] = ModelEntry(
            expression=expression,
            dependencies=dependencies,
            source=rhs,
        )
        seen[name] = None
        for dependency in dependencies:
            seen[dependency] = None

    hoisted = 0
    for name in seen:
        if name not in model:
            model[name] = ModelEntry(
                expression=None, dependencies=(), source="", is_derived=True
            )
            hoisted += 1

    logger.debug(
        "Parsed SCM: assigned=%d hoisted=%d", len(model) - hoisted, hoisted
    )
    return ParseResult(model=model, all_vars=set(seen))
