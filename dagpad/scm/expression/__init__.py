"""Restricted expression language used by SCM equations."""

from dagpad.scm.expression.grammar import BINARY_PRECEDENCE, parse_expression, tokenize
from dagpad.scm.expression.interpreter import Scope, evaluate_expression
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
    ERROR_IDENTIFIER,
    get_allowed_constant,
    get_allowed_function,
    get_allowed_function_names,
    is_allowed_function,
    is_reserved_identifier,
    is_special_identifier,
    list_allowed_constants,
)

__all__ = [
    "BINARY_PRECEDENCE",
    "parse_expression",
    "tokenize",
    "Scope",
    "evaluate_expression",
    "Binary",
    "Call",
    "Conditional",
    "Expr",
    "Identifier",
    "Literal",
    "Unary",
    "iter_identifiers",
    "ERROR_IDENTIFIER",
    "get_allowed_constant",
    "get_allowed_function",
    "get_allowed_function_names",
    "is_allowed_function",
    "is_reserved_identifier",
    "is_special_identifier",
    "list_allowed_constants",
]
