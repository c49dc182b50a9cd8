"""
Filter expressions for the table store.

The registry and activity tables are queried with a small textual filter
language (OData style)::

    partition_key eq 'ThirdParty' and container_name eq 'sft-acme'

The language has no parameter binding, so every dynamic string must be
interpolated through ``escape_filter_value``. The ``eq``/``ne`` builders do
that for you; building expressions any other way is a bug.

Grammar (``and`` binds tighter than ``or``, no parentheses)::

    expr    := conj ("or" conj)*
    conj    := cmp ("and" cmp)*
    cmp     := IDENT ("eq" | "ne") LITERAL
    LITERAL := 'text with '' escapes' | true | false | integer
"""

import re
from dataclasses import dataclass
from typing import Any, Mapping

from sqlalchemy import and_ as sql_and
from sqlalchemy import or_ as sql_or
from sqlalchemy.sql.elements import ColumnElement

from filegate.core.exceptions import FilterSyntaxError

_IDENT_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

_TOKEN_RE = re.compile(
    r"""
    \s*(?:
        (?P<string>'(?:[^']|'')*')
      | (?P<number>-?\d+)
      | (?P<word>[A-Za-z_][A-Za-z0-9_]*)
    )
    """,
    re.VERBOSE,
)

_OPERATORS = {"eq", "ne"}
_KEYWORDS = {"and", "or", "eq", "ne", "true", "false"}


def escape_filter_value(value: str) -> str:
    """
    Escape a string for use inside a quoted filter literal.

    Every single quote is doubled; nothing else changes.
    """
    return value.replace("'", "''")


def _literal(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, str):
        return f"'{escape_filter_value(value)}'"
    raise TypeError(f"Unsupported filter value type: {type(value).__name__}")


def _field(name: str) -> str:
    if not _IDENT_RE.match(name) or name in _KEYWORDS:
        raise FilterSyntaxError(f"Invalid filter field name: {name!r}")
    return name


def eq(field: str, value: Any) -> str:
    """Build ``field eq <literal>``."""
    return f"{_field(field)} eq {_literal(value)}"


def ne(field: str, value: Any) -> str:
    """Build ``field ne <literal>``."""
    return f"{_field(field)} ne {_literal(value)}"


def and_(*clauses: str) -> str:
    """Join clauses with ``and``; empty clauses are skipped."""
    return " and ".join(clause for clause in clauses if clause)


def or_(*clauses: str) -> str:
    """Join clauses with ``or``; empty clauses are skipped."""
    return " or ".join(clause for clause in clauses if clause)


# Parsing

@dataclass(frozen=True)
class Comparison:
    field: str
    op: str
    value: Any


@dataclass(frozen=True)
class Conjunction:
    terms: tuple


@dataclass(frozen=True)
class Disjunction:
    terms: tuple


@dataclass(frozen=True)
class _Token:
    kind: str  # string | number | keyword | ident
    text: str
    value: Any


def _tokenize(expression: str) -> list[_Token]:
    tokens: list[_Token] = []
    pos = 0
    end = len(expression.rstrip())

    while pos < end:
        match = _TOKEN_RE.match(expression, pos)
        if not match or match.end() == pos:
            raise FilterSyntaxError(f"Unexpected input at offset {pos}: {expression[pos:pos + 20]!r}")

        if match.group("string") is not None:
            raw = match.group("string")
            tokens.append(_Token("string", raw, raw[1:-1].replace("''", "'")))
        elif match.group("number") is not None:
            raw = match.group("number")
            tokens.append(_Token("number", raw, int(raw)))
        else:
            word = match.group("word")
            kind = "keyword" if word in _KEYWORDS else "ident"
            tokens.append(_Token(kind, word, word))

        pos = match.end()

    return tokens


class _Parser:
    def __init__(self, tokens: list[_Token]):
        self.tokens = tokens
        self.index = 0

    def _peek(self) -> _Token | None:
        return self.tokens[self.index] if self.index < len(self.tokens) else None

    def _next(self) -> _Token:
        token = self._peek()
        if token is None:
            raise FilterSyntaxError("Unexpected end of filter expression")
        self.index += 1
        return token

    def _at_keyword(self, word: str) -> bool:
        token = self._peek()
        return token is not None and token.kind == "keyword" and token.text == word

    def parse(self):
        node = self._parse_or()
        if self._peek() is not None:
            raise FilterSyntaxError(f"Unexpected token: {self._peek().text!r}")
        return node

    def _parse_or(self):
        terms = [self._parse_and()]
        while self._at_keyword("or"):
            self._next()
            terms.append(self._parse_and())
        return terms[0] if len(terms) == 1 else Disjunction(tuple(terms))

    def _parse_and(self):
        terms = [self._parse_comparison()]
        while self._at_keyword("and"):
            self._next()
            terms.append(self._parse_comparison())
        return terms[0] if len(terms) == 1 else Conjunction(tuple(terms))

    def _parse_comparison(self) -> Comparison:
        field = self._next()
        if field.kind != "ident":
            raise FilterSyntaxError(f"Expected field name, got {field.text!r}")

        op = self._next()
        if op.kind != "keyword" or op.text not in _OPERATORS:
            raise FilterSyntaxError(f"Expected 'eq' or 'ne', got {op.text!r}")

        literal = self._next()
        if literal.kind in ("string", "number"):
            value = literal.value
        elif literal.kind == "keyword" and literal.text in ("true", "false"):
            value = literal.text == "true"
        else:
            raise FilterSyntaxError(f"Expected literal, got {literal.text!r}")

        return Comparison(field.text, op.text, value)


def parse_filter(expression: str):
    """
    Parse a filter expression.

    Returns None for an empty expression (matches everything).
    """
    tokens = _tokenize(expression or "")
    if not tokens:
        return None
    return _Parser(tokens).parse()


def compile_filter(
    expression: str,
    columns: Mapping[str, Any],
) -> ColumnElement | None:
    """
    Compile a filter expression into a SQLAlchemy condition.

    Args:
        expression: Filter expression text
        columns: Whitelist of filterable field names to mapped columns

    Returns:
        SQLAlchemy boolean clause, or None when the expression is empty

    Raises:
        FilterSyntaxError: malformed expression or unknown field
    """
    node = parse_filter(expression)
    if node is None:
        return None
    return _compile_node(node, columns)


def _compile_node(node, columns: Mapping[str, Any]) -> ColumnElement:
    if isinstance(node, Disjunction):
        return sql_or(*(_compile_node(term, columns) for term in node.terms))
    if isinstance(node, Conjunction):
        return sql_and(*(_compile_node(term, columns) for term in node.terms))

    if node.field not in columns:
        raise FilterSyntaxError(f"Unknown filter field: {node.field!r}")

    column = columns[node.field]
    if node.op == "eq":
        return column == node.value
    return column != node.value
