"""Attribute expressions used to build document ids from record attributes.

Supported syntax::

    user:${tenant}:${user.id:trim():toLower()}

* ``${name}`` is replaced with the attribute value, or ``""`` when the record
  has no such attribute.
* ``$$`` produces a literal ``$``.
* Functions are chained after the attribute name: ``trim()``, ``toUpper()``,
  ``toLower()``, ``append('x')``, ``prepend('x')`` and ``replace('a', 'b')``.
  Arguments are single-quoted strings; ``\\'`` escapes a quote.

An expression that references attributes cannot be evaluated without a
record; that is reported as :class:`~keyfetch.errors.ExpressionError`.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from functools import lru_cache
from typing import Callable, Mapping, Protocol, Union

from ..errors import ExpressionError

_NAME_RE = re.compile(r"[A-Za-z0-9_.\-]+")
_FUNCTION_RE = re.compile(r":([A-Za-z]+)\(")

_FUNCTIONS: dict[str, tuple[int, Callable[..., str]]] = {
    "trim": (0, lambda value: value.strip()),
    "toUpper": (0, lambda value: value.upper()),
    "toLower": (0, lambda value: value.lower()),
    "append": (1, lambda value, suffix: value + suffix),
    "prepend": (1, lambda value, prefix: prefix + value),
    "replace": (2, lambda value, old, new: value.replace(old, new)),
}


class AttributeResolver(Protocol):
    """Anything able to turn an expression and attributes into a string."""

    def evaluate(self, expression: str, attributes: Mapping[str, str] | None) -> str:
        ...


@dataclass(frozen=True, slots=True)
class _Call:
    name: str
    args: tuple[str, ...]


@dataclass(frozen=True, slots=True)
class _Reference:
    attribute: str
    calls: tuple[_Call, ...] = ()


_Segment = Union[str, _Reference]


class CompiledExpression:
    """Parsed form of an expression, safe to share between threads."""

    def __init__(self, source: str, segments: tuple[_Segment, ...]) -> None:
        self.source = source
        self.segments = segments

    @property
    def references(self) -> list[str]:
        return [seg.attribute for seg in self.segments if isinstance(seg, _Reference)]

    def evaluate(self, attributes: Mapping[str, str] | None) -> str:
        if attributes is None and self.references:
            raise ExpressionError(
                f"Expression {self.source!r} references {', '.join(self.references)} "
                "but no record attributes are available"
            )
        parts: list[str] = []
        for segment in self.segments:
            if isinstance(segment, str):
                parts.append(segment)
                continue
            value = str((attributes or {}).get(segment.attribute, ""))
            for call in segment.calls:
                value = _FUNCTIONS[call.name][1](value, *call.args)
            parts.append(value)
        return "".join(parts)


def _skip_spaces(body: str, index: int) -> int:
    while index < len(body) and body[index].isspace():
        index += 1
    return index


def _read_quoted(body: str, index: int, expression: str) -> tuple[str, int]:
    chars: list[str] = []
    while index < len(body):
        char = body[index]
        if char == "\\" and index + 1 < len(body):
            chars.append(body[index + 1])
            index += 2
            continue
        if char == "'":
            return "".join(chars), index + 1
        chars.append(char)
        index += 1
    raise ExpressionError(f"Unterminated string literal in {expression!r}")


def _parse_arguments(body: str, index: int, expression: str) -> tuple[list[str], int]:
    args: list[str] = []
    index = _skip_spaces(body, index)
    if body.startswith(")", index):
        return args, index + 1
    while True:
        if not body.startswith("'", index):
            raise ExpressionError(f"Function arguments must be quoted strings in {expression!r}")
        value, index = _read_quoted(body, index + 1, expression)
        args.append(value)
        index = _skip_spaces(body, index)
        if body.startswith(")", index):
            return args, index + 1
        if not body.startswith(",", index):
            raise ExpressionError(f"Expected ',' or ')' in {expression!r}")
        index = _skip_spaces(body, index + 1)


def _parse_reference(body: str, expression: str) -> _Reference:
    match = _NAME_RE.match(body)
    if not match:
        raise ExpressionError(f"Empty or invalid attribute reference in {expression!r}")
    index = match.end()
    calls: list[_Call] = []
    while index < len(body):
        func_match = _FUNCTION_RE.match(body, index)
        if not func_match:
            raise ExpressionError(f"Unexpected {body[index:]!r} in {expression!r}")
        name = func_match.group(1)
        if name not in _FUNCTIONS:
            raise ExpressionError(f"Unknown function {name!r} in {expression!r}")
        args, index = _parse_arguments(body, func_match.end(), expression)
        arity = _FUNCTIONS[name][0]
        if len(args) != arity:
            raise ExpressionError(
                f"Function {name!r} expects {arity} argument(s), got {len(args)} in {expression!r}"
            )
        calls.append(_Call(name, tuple(args)))
    return _Reference(match.group(0), tuple(calls))


def _find_closing(expression: str, index: int) -> int:
    in_quote = False
    while index < len(expression):
        char = expression[index]
        if in_quote:
            if char == "\\":
                index += 2
                continue
            if char == "'":
                in_quote = False
        elif char == "'":
            in_quote = True
        elif char == "}":
            return index
        index += 1
    raise ExpressionError(f"Unterminated '${{' in {expression!r}")


@lru_cache(maxsize=256)
def compile_expression(expression: str) -> CompiledExpression:
    segments: list[_Segment] = []
    literal: list[str] = []
    index = 0
    while index < len(expression):
        if expression.startswith("$$", index):
            literal.append("$")
            index += 2
            continue
        if expression.startswith("${", index):
            end = _find_closing(expression, index + 2)
            if literal:
                segments.append("".join(literal))
                literal = []
            segments.append(_parse_reference(expression[index + 2 : end].strip(), expression))
            index = end + 1
            continue
        literal.append(expression[index])
        index += 1
    if literal:
        segments.append("".join(literal))
    return CompiledExpression(expression, tuple(segments))


class ExpressionEvaluator:
    """Default :class:`AttributeResolver` backed by :func:`compile_expression`."""

    def evaluate(self, expression: str, attributes: Mapping[str, str] | None) -> str:
        return compile_expression(expression).evaluate(attributes)


__all__ = [
    "AttributeResolver",
    "CompiledExpression",
    "ExpressionEvaluator",
    "compile_expression",
]
