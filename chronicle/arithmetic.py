"""Safe arithmetic evaluation for resolved dice expressions.

Grammar (whitespace is stripped before tokenizing):

    expr    := term (("+" | "-") term)*
    term    := factor (("*" | "/") factor)*
    factor  := ["+" | "-"] primary
    primary := NUMBER | "(" expr ")"

A sign directly after a binary ``+`` or ``-`` is rejected, so ``5--3`` and
``5++-3`` are malformed. Values are computed with :class:`fractions.Fraction`
so division is exact until the final floor.
"""

from __future__ import annotations

import math
import re
from fractions import Fraction

_ALLOWED_RE = re.compile(r"^[0-9+\-*/().]+$")
_TOKEN_RE = re.compile(r"[0-9]+(?:\.[0-9]*)?|\.[0-9]+|[()+\-*/]")


class ExpressionError(ValueError):
    """Raised when an arithmetic expression cannot be evaluated."""


def _tokens(expression: str) -> list[str]:
    tokens: list[str] = []
    idx = 0
    while idx < len(expression):
        m = _TOKEN_RE.match(expression, idx)
        if not m:
            raise ExpressionError(f"Invalid token near: {expression[idx:idx + 10]!r}")
        tokens.append(m.group(0))
        idx = m.end()
    return tokens


class _Parser:
    def __init__(self, tokens: list[str]) -> None:
        self.tokens = tokens
        self.pos = 0

    def _peek(self) -> str | None:
        return self.tokens[self.pos] if self.pos < len(self.tokens) else None

    def _consume(self) -> str:
        tok = self._peek()
        if tok is None:
            raise ExpressionError("Unexpected end of expression")
        self.pos += 1
        return tok

    def parse(self) -> Fraction:
        value = self._expr()
        if self._peek() is not None:
            raise ExpressionError(f"Unexpected token: {self._peek()!r}")
        return value

    def _expr(self) -> Fraction:
        value = self._term(allow_sign=True)
        while self._peek() in ("+", "-"):
            op = self._consume()
            right = self._term(allow_sign=False)
            value = value + right if op == "+" else value - right
        return value

    def _term(self, allow_sign: bool) -> Fraction:
        value = self._factor(allow_sign)
        while self._peek() in ("*", "/"):
            op = self._consume()
            right = self._factor(allow_sign=True)
            if op == "*":
                value = value * right
            else:
                if right == 0:
                    raise ExpressionError("Division by zero")
                value = value / right
        return value

    def _factor(self, allow_sign: bool) -> Fraction:
        tok = self._peek()
        if tok in ("+", "-"):
            if not allow_sign:
                raise ExpressionError(f"Unexpected sign: {tok!r}")
            self._consume()
            value = self._primary()
            return -value if tok == "-" else value
        return self._primary()

    def _primary(self) -> Fraction:
        tok = self._consume()
        if tok == "(":
            value = self._expr()
            if self._consume() != ")":
                raise ExpressionError("Missing ')'")
            return value
        if tok[0] in "0123456789.":
            return Fraction(tok)
        raise ExpressionError(f"Unexpected token: {tok!r}")


def normalize(expression: str) -> str:
    """Strip whitespace and validate the character set.

    Applies the ``+-`` to ``-`` fix-up once, textually.

    Raises:
        ExpressionError: If the expression is empty or has characters outside
            digits, ``+ - * / ( )`` and ``.``.
    """
    cleaned = re.sub(r"\s+", "", expression)
    if not _ALLOWED_RE.match(cleaned):
        raise ExpressionError(f"Invalid characters in expression: {expression!r}")
    return cleaned.replace("+-", "-")


def evaluate_arithmetic(expression: str) -> int:
    """Evaluate an arithmetic expression and floor the result.

    Args:
        expression: Numbers, ``+ - * /`` and parentheses, e.g. "(2+3)*4".

    Returns:
        The result floored toward negative infinity.

    Raises:
        ExpressionError: If the expression is malformed or divides by zero.
    """
    value = _Parser(_tokens(normalize(expression))).parse()
    return math.floor(value)
