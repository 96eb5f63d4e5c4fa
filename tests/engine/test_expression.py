from __future__ import annotations

import pytest

from keyfetch.engine import ExpressionEvaluator, compile_expression
from keyfetch.errors import ConfigurationFault, ExpressionError


@pytest.mark.parametrize(
    ("expression", "attributes", "expected"),
    [
        ("plain-id", {}, "plain-id"),
        ("${a}", {"a": "1"}, "1"),
        ("${doc.key}-${x_y}", {"doc.key": "k", "x_y": "v"}, "k-v"),
        ("${missing}", {}, ""),
        ("cost $$5 ${a}", {"a": "x"}, "cost $5 x"),
        ("${ a }", {"a": "spaced"}, "spaced"),
        ("${a:toLower()}", {"a": "ABC"}, "abc"),
        ("${a:append('-v2')}", {"a": "doc"}, "doc-v2"),
        ("${a:prepend('user::')}", {"a": "42"}, "user::42"),
        ("${a:replace(' ', '_')}", {"a": "a b c"}, "a_b_c"),
        ("${a:append('}')}", {"a": "x"}, "x}"),
        ("${a:append('it\\'s')}", {"a": ""}, "it's"),
    ],
)
def test_evaluate(expression, attributes, expected) -> None:
    assert ExpressionEvaluator().evaluate(expression, attributes) == expected


def test_literal_evaluates_without_record() -> None:
    assert ExpressionEvaluator().evaluate("static-key", None) == "static-key"


def test_reference_without_record_is_rejected() -> None:
    with pytest.raises(ExpressionError) as info:
        ExpressionEvaluator().evaluate("user:${id}", None)
    assert "id" in str(info.value)


@pytest.mark.parametrize(
    "expression",
    [
        "${unterminated",
        "${}",
        "${a:nope()}",
        "${a:append()}",
        "${a:trim('x')}",
        "${a:append(x)}",
        "${a:append('x'}",
        "${a b}",
    ],
)
def test_malformed_expressions(expression) -> None:
    with pytest.raises(ExpressionError):
        ExpressionEvaluator().evaluate(expression, {"a": "1"})


def test_expression_error_is_a_configuration_fault() -> None:
    assert issubclass(ExpressionError, ConfigurationFault)


def test_compiled_expression_lists_references() -> None:
    compiled = compile_expression("${tenant}:${id:trim()}")
    assert compiled.references == ["tenant", "id"]
    assert compile_expression("${tenant}:${id:trim()}") is compiled
