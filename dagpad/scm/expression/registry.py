"""Closed tables of the names an SCM expression may use.

Function names are case-insensitive; constants and the special ``error``
identifier are case-sensitive.
"""

from __future__ import annotations

import math
from types import MappingProxyType
from typing import Callable, Mapping

import torch
from torch import Tensor

_ALLOWED_FUNCTIONS: Mapping[str, Callable[[Tensor], Tensor]] = MappingProxyType(
    {
        "abs": torch.abs,
        "sin": torch.sin,
        "cos": torch.cos,
        "log": torch.log,
        "exp": torch.exp,
    }
)

_ALLOWED_CONSTANTS: Mapping[str, float] = MappingProxyType(
    {
        "PI": math.pi,
        "E": math.e,
    }
)

ERROR_IDENTIFIER = "error"

# C-like binary operators understood by the grammar, with binding strength.
_BASE_BINARY_PRECEDENCE: Mapping[str, int] = MappingProxyType(
    {
        "||": 1,
        "&&": 2,
        "==": 6,
        "!=": 6,
        "<": 7,
        ">": 7,
        "<=": 7,
        ">=": 7,
        "+": 9,
        "-": 9,
        "*": 10,
        "/": 10,
        "%": 10,
    }
)

# Power joins the multiplicative tier.
_EXTRA_BINARY_OPERATORS: Mapping[str, int] = MappingProxyType({"^": 10})

UNARY_OPERATORS = frozenset({"+", "-", "!"})


def build_binary_precedence() -> Mapping[str, int]:
    """Return the full, read-only binary precedence table.

    The table is rebuilt from the fixed base and extra operator tables, so
    repeated calls return equal tables and never accumulate state.
    """
    return MappingProxyType({**_BASE_BINARY_PRECEDENCE, **_EXTRA_BINARY_OPERATORS})


def _normalize(name: str) -> str:
    return str(name or "").lower()


def is_allowed_function(name: str) -> bool:
    return _normalize(name) in _ALLOWED_FUNCTIONS


def get_allowed_function(name: str) -> Callable[[Tensor], Tensor] | None:
    return _ALLOWED_FUNCTIONS.get(_normalize(name))


def get_allowed_function_names() -> list[str]:
    return list(_ALLOWED_FUNCTIONS)


def get_allowed_constant(name: str) -> float | None:
    return _ALLOWED_CONSTANTS.get(name)


def list_allowed_constants() -> list[str]:
    return list(_ALLOWED_CONSTANTS)


def is_special_identifier(name: str) -> bool:
    return name == ERROR_IDENTIFIER


def is_reserved_identifier(name: str) -> bool:
    """Whether ``name`` never denotes an SCM variable inside an expression."""
    return (
        is_allowed_function(name)
        or name in _ALLOWED_CONSTANTS
        or is_special_identifier(name)
    )
