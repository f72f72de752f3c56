"""Tests for overrides/envvars.py: the [{key, value}] environment-variable syntax."""
from __future__ import annotations

import pytest

from codebuild_runner.core.constants import EnvironmentVariableType
from codebuild_runner.core.exceptions import ConfigurationError, ParseError
from codebuild_runner.core.types import EnvironmentVariable
from codebuild_runner.overrides.envvars import (
    ENV_VARIABLE_SYNTAX_ERROR,
    parse_environment_variables,
)


def _pairs(variables: list[EnvironmentVariable]) -> list[tuple[str, str]]:
    return [(v.name, v.value) for v in variables]


# ---------------------------------------------------------------------------
# Valid input
# ---------------------------------------------------------------------------


@pytest.mark.parametrize("text", ["", None])
def test_empty_input_yields_no_variables(text: str | None) -> None:
    assert parse_environment_variables(text) == []


def test_single_pair() -> None:
    result = parse_environment_variables("[{KEY, VALUE}]")
    assert _pairs(result) == [("KEY", "VALUE")]
    assert result[0].type == EnvironmentVariableType.PLAINTEXT


def test_multiple_pairs_keep_input_order() -> None:
    result = parse_environment_variables("[{a, 1}, {b, 2}, {c, 3}]")
    assert _pairs(result) == [("a", "1"), ("b", "2"), ("c", "3")]


def test_whitespace_around_delimiters_is_tolerated() -> None:
    result = parse_environment_variables("  [ {  KEY ,  VALUE  }  ,  { K2, V2 } ]  ")
    assert _pairs(result) == [("KEY", "VALUE"), ("K2", "V2")]


def test_newlines_and_tabs_are_dropped() -> None:
    result = parse_environment_variables("[{KEY,\n\tVALUE},\n{K2, V2}]")
    assert _pairs(result) == [("KEY", "VALUE"), ("K2", "V2")]


def test_escaped_comma_becomes_literal_comma() -> None:
    result = parse_environment_variables(r"[{KEY, a\,b\,c}]")
    assert _pairs(result) == [("KEY", "a,b,c")]


def test_escaped_comma_in_key() -> None:
    result = parse_environment_variables(r"[{K\,EY, value}]")
    assert _pairs(result) == [("K,EY", "value")]


def test_duplicate_names_are_kept() -> None:
    result = parse_environment_variables("[{KEY, one}, {KEY, two}]")
    assert _pairs(result) == [("KEY", "one"), ("KEY", "two")]


def test_kind_is_applied_to_every_variable() -> None:
    result = parse_environment_variables(
        "[{DB_PASSWORD, /prod/db/password}, {TOKEN, /prod/token}]",
        EnvironmentVariableType.PARAMETER_REFERENCE,
    )
    assert {v.type for v in result} == {EnvironmentVariableType.PARAMETER_REFERENCE}
    assert result[0].to_api() == {
        "name": "DB_PASSWORD",
        "value": "/prod/db/password",
        "type": "PARAMETER_STORE",
    }


# ---------------------------------------------------------------------------
# Invalid input
# ---------------------------------------------------------------------------


@pytest.mark.parametrize(
    "text",
    [
        "[]",
        "[{}]",
        "{KEY, VALUE}",
        "[{KEY, VALUE}",
        "KEY, VALUE",
        "[{KEY VALUE}]",
        "[{KEY, VALUE, EXTRA}]",
        "[{, VALUE}]",
        "[{KEY, }]",
        "[{KEY, VALUE}, {}]",
        "[{a, b}, {c d}]",
    ],
)
def test_malformed_input_raises_parse_error(text: str) -> None:
    with pytest.raises(ParseError) as exc_info:
        parse_environment_variables(text)
    assert exc_info.value.message == ENV_VARIABLE_SYNTAX_ERROR


def test_parse_error_is_a_configuration_error() -> None:
    with pytest.raises(ConfigurationError):
        parse_environment_variables("not a list")


def test_syntax_message_shows_expected_form() -> None:
    assert "[{key, value}, {key2, value2}]" in ENV_VARIABLE_SYNTAX_ERROR
