"""Arithmetic expression evaluator for scoring rules.

Expressions combine numeric literals and field identifiers with ``+ - * /``,
unary signs and parentheses. ``*`` and ``/`` bind tighter than ``+`` and
``-``; operators of equal precedence associate left to right.

Identifiers are ``[A-Za-z_][A-Za-z0-9_.]*``. A field id that is not a plain
identifier (for example ``first-place``) is written in brackets:
``[first-place] * 2``.
"""

import math
import re
from collections.abc import Mapping
from dataclasses import dataclass
from functools import cached_property, lru_cache

from scoresheets.domain.definitions import FieldValue
from scoresheets.domain.errors import EvaluationError, ExpressionSyntaxError

_TOKEN_PATTERN = re.compile(
    r"""
    (?P<space>\s+)
    |(?P<number>(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?)
    |(?P<name>[A-Za-z_][A-Za-z0-9_.]*)
    |\[(?P<quoted>[^\[\]]+)\]
    |(?P<op>[-+*/()])
    """,
    re.VERBOSE,
)

_BINARY_PRECEDENCE = {"+": 1, "-": 1, "*": 2, "/": 2}

# Deepest allowed nesting of parentheses and unary signs, and most operators
# on any path through the tree.
MAX_NESTING = 100


@dataclass(frozen=True)
class Token:
    """A lexical token with its source offset."""

    kind: str
    text: str
    position: int


def tokenize(expression: str) -> list[Token]:
    """Split an expression into tokens, ending with an ``end`` token."""
    tokens: list[Token] = []
    position = 0
    while position < len(expression):
        match = _TOKEN_PATTERN.match(expression, position)
        if match is None:
            raise ExpressionSyntaxError(
                f"unexpected character {expression[position]!r}", position
            )
        kind = match.lastgroup
        if kind == "quoted":
            tokens.append(Token("name", match.group("quoted").strip(), position))
        elif kind != "space":
            tokens.append(Token(kind, match.group(kind), position))
        position = match.end()
    tokens.append(Token("end", "", len(expression)))
    return tokens


class Expression:
    """Base class for parsed expression nodes."""

    def evaluate(self, values: Mapping[str, FieldValue | None]) -> float:
        raise NotImplementedError

    def identifiers(self) -> frozenset[str]:
        return frozenset()

    @cached_property
    def height(self) -> int:
        return 0


@dataclass(frozen=True)
class NumberLiteral(Expression):
    value: float

    def evaluate(self, values: Mapping[str, FieldValue | None]) -> float:
        return self.value


@dataclass(frozen=True)
class FieldReference(Expression):
    name: str

    def evaluate(self, values: Mapping[str, FieldValue | None]) -> float:
        return coerce_number(self.name, values.get(self.name))

    def identifiers(self) -> frozenset[str]:
        return frozenset({self.name})


@dataclass(frozen=True)
class UnaryOperation(Expression):
    operator: str
    operand: Expression

    def evaluate(self, values: Mapping[str, FieldValue | None]) -> float:
        result = self.operand.evaluate(values)
        return -result if self.operator == "-" else result

    def identifiers(self) -> frozenset[str]:
        return self.operand.identifiers()

    @cached_property
    def height(self) -> int:
        return self.operand.height + 1


@dataclass(frozen=True)
class BinaryOperation(Expression):
    operator: str
    left: Expression
    right: Expression

    def evaluate(self, values: Mapping[str, FieldValue | None]) -> float:
        left = self.left.evaluate(values)
        right = self.right.evaluate(values)
        if self.operator == "+":
            return left + right
        if self.operator == "-":
            return left - right
        if self.operator == "*":
            return left * right
        if right == 0:
            raise EvaluationError("division by zero")
        return left / right

    def identifiers(self) -> frozenset[str]:
        return self.left.identifiers() | self.right.identifiers()

    @cached_property
    def height(self) -> int:
        return max(self.left.height, self.right.height) + 1


class _Parser:
    """Precedence-climbing parser over a token list."""

    def __init__(self, tokens: list[Token]) -> None:
        self.tokens = tokens
        self.index = 0
        self.nesting = 0

    @property
    def current(self) -> Token:
        return self.tokens[self.index]

    def advance(self) -> Token:
        token = self.tokens[self.index]
        self.index += 1
        return token

    def parse(self) -> Expression:
        if self.current.kind == "end":
            raise ExpressionSyntaxError("empty expression", 0)
        node = self.parse_binary(1)
        if self.current.kind != "end":
            raise ExpressionSyntaxError(
                f"unexpected {self.current.text!r}", self.current.position
            )
        return node

    def parse_binary(self, min_precedence: int) -> Expression:
        left = self.parse_unary()
        while (
            self.current.kind == "op"
            and _BINARY_PRECEDENCE.get(self.current.text, 0) >= min_precedence
        ):
            token = self.advance()
            right = self.parse_binary(_BINARY_PRECEDENCE[token.text] + 1)
            left = self._bounded(BinaryOperation(token.text, left, right), token)
        return left

    def parse_unary(self) -> Expression:
        if self.current.kind == "op" and self.current.text in {"+", "-"}:
            token = self.advance()
            self._descend(token)
            node = UnaryOperation(token.text, self.parse_unary())
            self.nesting -= 1
            return self._bounded(node, token)
        return self.parse_primary()

    def parse_primary(self) -> Expression:
        token = self.advance()
        if token.kind == "number":
            return NumberLiteral(float(token.text))
        if token.kind == "name":
            return FieldReference(token.text)
        if token.kind == "op" and token.text == "(":
            self._descend(token)
            node = self.parse_binary(1)
            closing = self.advance()
            if closing.kind != "op" or closing.text != ")":
                raise ExpressionSyntaxError("expected ')'", closing.position)
            self.nesting -= 1
            return node
        if token.kind == "end":
            raise ExpressionSyntaxError("unexpected end of expression", token.position)
        raise ExpressionSyntaxError(f"unexpected {token.text!r}", token.position)

    def _descend(self, token: Token) -> None:
        self.nesting += 1
        if self.nesting > MAX_NESTING:
            raise ExpressionSyntaxError("expression nested too deeply", token.position)

    def _bounded(self, node: Expression, token: Token) -> Expression:
        if node.height > MAX_NESTING:
            raise ExpressionSyntaxError("expression nested too deeply", token.position)
        return node


@lru_cache(maxsize=512)
def parse_expression(expression: str) -> Expression:
    """Parse an expression into an immutable tree."""
    return _Parser(tokenize(expression)).parse()


def referenced_fields(expression: str) -> frozenset[str]:
    """Return the field identifiers an expression refers to."""
    return parse_expression(expression).identifiers()


def evaluate_expression(
    expression: str, values: Mapping[str, FieldValue | None]
) -> float:
    """Evaluate an expression against one player's field values.

    Identifiers missing from ``values`` count as zero. Booleans count as one
    or zero. Text values, division by zero and malformed syntax raise
    ``EvaluationError``.
    """
    result = parse_expression(expression).evaluate(values)
    if not math.isfinite(result):
        raise EvaluationError("result is not a finite number")
    return result


def coerce_number(name: str, value: FieldValue | None) -> float:
    """Convert a stored field value to a number for arithmetic."""
    if value is None:
        return 0.0
    if isinstance(value, bool):
        return 1.0 if value else 0.0
    if isinstance(value, int | float):
        return float(value)
    raise EvaluationError(f"field {name!r} holds non-numeric value {value!r}")
