"""Syntax check for KQL-style filter expressions.

Only the shape of the expression is checked; the expression is never
compiled into a backend query here. Supported forms::

    host.name:web-01
    service.name:"checkout api" and not labels.env:(dev or test)
    system.cpu.total.pct >= 0.5
    host.name:web-*  or  tags:*
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from .errors import FilterSyntaxError

_TOKEN_RE = re.compile(
    r"""
    (?P<ws>\s+)
  | (?P<lparen>\()
  | (?P<rparen>\))
  | (?P<colon>:)
  | (?P<range><=|>=|<|>)
  | (?P<quoted>"(?:[^"\\]|\\.)*")
  | (?P<unterminated>")
  | (?P<brace>[{}])
  | (?P<literal>(?:[^\s():<>"{}\\]|\\.)+)
    """,
    re.VERBOSE,
)

_KEYWORDS = {"and", "or", "not"}


@dataclass(frozen=True)
class _Token:
    kind: str
    text: str
    pos: int


def _tokenize(text: str) -> list[_Token]:
    tokens: list[_Token] = []
    pos = 0
    while pos < len(text):
        match = _TOKEN_RE.match(text, pos)
        if match is None:
            raise FilterSyntaxError("Unexpected character", text, pos)
        kind = match.lastgroup or ""
        value = match.group()
        if kind == "unterminated":
            raise FilterSyntaxError("Unterminated quoted string", text, pos)
        if kind == "brace":
            raise FilterSyntaxError("Nested field queries are not supported", text, pos)
        if kind == "literal" and value.lower() in _KEYWORDS:
            kind = value.lower()
        if kind != "ws":
            tokens.append(_Token(kind, value, pos))
        pos = match.end()
    return tokens


class _Parser:
    def __init__(self, text: str) -> None:
        self.text = text
        self.tokens = _tokenize(text)
        self.idx = 0

    def _peek(self, offset: int = 0) -> _Token | None:
        i = self.idx + offset
        return self.tokens[i] if i < len(self.tokens) else None

    def _pos(self) -> int:
        tok = self._peek()
        return tok.pos if tok else len(self.text)

    def _fail(self, message: str) -> FilterSyntaxError:
        return FilterSyntaxError(message, self.text, self._pos())

    def _accept(self, kind: str) -> bool:
        tok = self._peek()
        if tok is not None and tok.kind == kind:
            self.idx += 1
            return True
        return False

    def _expect(self, kind: str, message: str) -> None:
        if not self._accept(kind):
            raise self._fail(message)

    def parse(self) -> None:
        if not self.tokens:
            return
        self._or_expr(value_only=False)
        if self._peek() is not None:
            raise self._fail(f"Unexpected {self._peek().text!r}")

    def _or_expr(self, value_only: bool) -> None:
        self._and_expr(value_only)
        while self._accept("or"):
            self._and_expr(value_only)

    def _and_expr(self, value_only: bool) -> None:
        self._not_expr(value_only)
        while self._accept("and"):
            self._not_expr(value_only)

    def _not_expr(self, value_only: bool) -> None:
        if self._accept("not"):
            self._not_expr(value_only)
            return
        if self._accept("lparen"):
            self._or_expr(value_only)
            self._expect("rparen", "Expected ')'")
            return
        if value_only:
            self._value("Expected a value")
            return
        self._field_or_value()

    def _field_or_value(self) -> None:
        tok = self._peek()
        nxt = self._peek(1)
        if tok is not None and tok.kind == "literal" and nxt is not None:
            if nxt.kind == "colon":
                self.idx += 2
                if self._accept("lparen"):
                    self._or_expr(value_only=True)
                    self._expect("rparen", "Expected ')'")
                else:
                    self._value("Expected a value after ':'")
                return
            if nxt.kind == "range":
                self.idx += 2
                if not (self._accept("literal") or self._accept("quoted")):
                    raise self._fail("Expected a value after range operator")
                return
        self._value("Expected a field, value or '('")

    def _value(self, message: str) -> None:
        if self._accept("quoted"):
            return
        if not self._accept("literal"):
            raise self._fail(message)
        # Unquoted values may span several words
        while self._peek() is not None and self._peek().kind == "literal":
            if self._peek(1) is not None and self._peek(1).kind in {"colon", "range"}:
                raise self._fail("Expected 'and' or 'or' between clauses")
            self.idx += 1


def validate_filter_query(text: str | None) -> None:
    """Raise FilterSyntaxError if ``text`` is not a well formed filter."""
    if text is None:
        return
    _Parser(text).parse()
