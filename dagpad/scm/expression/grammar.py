"""Tokenizer and precedence-climbing parser for SCM expressions.

The grammar covers numeric literals, identifiers, unary ``+ - !``, the binary
operators of :func:`~dagpad.scm.expression.registry.build_binary_precedence`,
the ternary ``?:`` and calls ``name(args...)``. Parsing only checks syntax;
which functions may be called is enforced by :mod:`dagpad.scm.parser`.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Mapping

from dagpad.scm.errors import ParseError
from dagpad.scm.expression.nodes import (
    Binary,
    Call,
    Conditional,
    Expr,
    Identifier,
    Literal,
    Unary,
)
from dagpad.scm.expression.registry import UNARY_OPERATORS, build_binary_precedence

# Built once at import; the table is immutable afterwards.
BINARY_PRECEDENCE: Mapping[str, int] = build_binary_precedence()

_NUMBER_RE = re.compile(r"(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")
_IDENTIFIER_RE = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")
_TWO_CHAR_OPERATORS = ("||", "&&", "==", "!=", "<=", ">=")
_ONE_CHAR_OPERATORS = frozenset("+-*/%^<>!")
_PUNCTUATION = frozenset("(),?:")
_BOOLEAN_LITERALS = {"true": 1.0, "false": 0.0}


@dataclass(frozen=True)
class Token:
    kind: str  # "number", "name", "op", "punct" or "end"
    text: str
    position: int


def tokenize(text: str) -> list[Token]:
    """Split ``text`` into tokens, ending with an ``"end"`` token."""
    tokens: list[Token] = []
    pos = 0
    length = len(text)
    while pos < length:
        char = text[pos]
        if char.isspace():
            pos += 1
            continue

        match = _NUMBER_RE.match(text, pos)
        if match and (char.isdigit() or char == "."):
            end = match.end()
            if end < length and (text[end].isalpha() or text[end] == "_"):
                raise ParseError(
                    f"Variable names cannot start with a number (at position {pos})."
                )
            tokens.append(Token("number", match.group(0), pos))
            pos = end
            continue

        match = _IDENTIFIER_RE.match(text, pos)
        if match:
            tokens.append(Token("name", match.group(0), pos))
            pos = match.end()
            continue

        pair = text[pos : pos + 2]
        if pair in _TWO_CHAR_OPERATORS:
            tokens.append(Token("op", pair, pos))
            pos += 2
            continue
        if char in _ONE_CHAR_OPERATORS:
            tokens.append(Token("op", char, pos))
            pos += 1
            continue
        if char in _PUNCTUATION:
            tokens.append(Token("punct", char, pos))
            pos += 1
            continue

        raise ParseError(f"Unexpected character {char!r} at position {pos}.")

    tokens.append(Token("end", "", length))
    return tokens


class _Parser:
    def __init__(self, text: str, precedence: Mapping[str, int]) -> None:
        self._tokens = tokenize(text)
        self._index = 0
        self._precedence = precedence

    @property
    def _current(self) -> Token:
        return self._tokens[self._index]

    def _advance(self) -> Token:
        token = self._tokens[self._index]
        self._index += 1
        return token

    def _expect(self, text: str) -> None:
        token = self._current
        if token.kind != "punct" or token.text != text:
            raise ParseError(
                f"Expected {text!r} at position {token.position}, "
                f"found {token.text or 'end of expression'!r}."
            )
        self._advance()

    def _is_punct(self, text: str) -> bool:
        return self._current.kind == "punct" and self._current.text == text

    def parse(self) -> Expr:
        if self._current.kind == "end":
            raise ParseError("Empty expression.")
        node = self._parse_conditional()
        if self._current.kind != "end":
            token = self._current
            raise ParseError(
                f"Unexpected token {token.text!r} at position {token.position}."
            )
        return node

    def _parse_conditional(self) -> Expr:
        test = self._parse_binary(1)
        if not self._is_punct("?"):
            return test
        self._advance()
        consequent = self._parse_conditional()
        self._expect(":")
        alternate = self._parse_conditional()
        return Conditional(test=test, consequent=consequent, alternate=alternate)

    def _parse_binary(self, min_precedence: int) -> Expr:
        left = self._parse_unary()
        while True:
            token = self._current
            if token.kind != "op" or token.text not in self._precedence:
                return left
            precedence = self._precedence[token.text]
            if precedence < min_precedence:
                return left
            self._advance()
            right = self._parse_binary(precedence + 1)
            left = Binary(operator=token.text, left=left, right=right)

    def _parse_unary(self) -> Expr:
        token = self._current
        if token.kind == "op" and token.text in UNARY_OPERATORS:
            self._advance()
            return Unary(operator=token.text, argument=self._parse_unary())
        return self._parse_postfix()

    def _parse_postfix(self) -> Expr:
        node = self._parse_primary()
        while self._is_punct("("):
            self._advance()
            arguments: list[Expr] = []
            if not self._is_punct(")"):
                arguments.append(self._parse_conditional())
                while self._is_punct(","):
                    self._advance()
                    arguments.append(self._parse_conditional())
            self._expect(")")
            node = Call(callee=node, arguments=tuple(arguments))
        return node

    def _parse_primary(self) -> Expr:
        token = self._current
        if token.kind == "number":
            self._advance()
            return Literal(value=float(token.text), raw=token.text)
        if token.kind == "name":
            self._advance()
            if token.text in _BOOLEAN_LITERALS:
                return Literal(value=_BOOLEAN_LITERALS[token.text], raw=token.text)
            return Identifier(name=token.text)
        if self._is_punct("("):
            self._advance()
            node = self._parse_conditional()
            self._expect(")")
            return node
        if token.kind == "end":
            raise ParseError("Unexpected end of expression.")
        raise ParseError(
            f"Unexpected token {token.text!r} at position {token.position}."
        )


def parse_expression(
    text: str, precedence: Mapping[str, int] | None = None
) -> Expr:
    """Parse one expression into a tree.

    Args:
        text: Expression source, e.g. ``"2*X + sin(Z) + error"``.
        precedence: Binary operator table. Defaults to :data:`BINARY_PRECEDENCE`.

    Returns:
        The root node of the expression tree.

    Raises:
        ParseError: If ``text`` is not a well-formed expression.
    """
    table = BINARY_PRECEDENCE if precedence is None else precedence
    return _Parser(str(text), table).parse()
