"""Expression tree nodes.

The tree is a closed union of six node types. Code walking a tree dispatches
on the concrete class and raises on anything else.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union


@dataclass(frozen=True)
class Literal:
    """A numeric constant such as ``0.5`` or ``true``."""

    value: float
    raw: str


@dataclass(frozen=True)
class Identifier:
    """A bare name: an SCM variable, a constant, or ``error``."""

    name: str


@dataclass(frozen=True)
class Unary:
    """A prefix operation ``+a``, ``-a`` or ``!a``."""

    operator: str
    argument: Expr


@dataclass(frozen=True)
class Binary:
    """An arithmetic, comparison or logical operation."""

    operator: str
    left: Expr
    right: Expr


@dataclass(frozen=True)
class Conditional:
    """A ternary ``test ? consequent : alternate``."""

    test: Expr
    consequent: Expr
    alternate: Expr


@dataclass(frozen=True)
class Call:
    """A function call. Only identifier callees survive validation."""

    callee: Expr
    arguments: tuple[Expr, ...]


Expr = Union[Literal, Identifier, Unary, Binary, Conditional, Call]


def iter_identifiers(node: Expr):
    """Yield every :class:`Identifier` name in ``node``, left to right.

    Callee names of :class:`Call` nodes are not yielded.
    """
    if isinstance(node, Identifier):
        yield node.name
    elif isinstance(node, Literal):
        return
    elif isinstance(node, Unary):
        yield from iter_identifiers(node.argument)
    elif isinstance(node, Binary):
        yield from iter_identifiers(node.left)
        yield from iter_identifiers(node.right)
    elif isinstance(node, Conditional):
        yield from iter_identifiers(node.test)
        yield from iter_identifiers(node.consequent)
        yield from iter_identifiers(node.alternate)
    elif isinstance(node, Call):
        for argument in node.arguments:
            yield from iter_identifiers(argument)
    else:
        raise TypeError(f"Unsupported expression node {type(node).__name__!r}.")
