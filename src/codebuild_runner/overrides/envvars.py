"""Parser for the ``[{key, value}, {key2, value2}]`` environment-variable syntax."""

from __future__ import annotations

import re

from codebuild_runner.core.constants import EnvironmentVariableType
from codebuild_runner.core.exceptions import ParseError
from codebuild_runner.core.types import EnvironmentVariable

ENV_VARIABLE_SYNTAX_ERROR = (
    "CodeBuild environment variable keys and values cannot be empty and the string "
    "must be of the form [{key, value}, {key2, value2}]"
)
ENV_VARIABLE_NAMESPACE_ERROR = "CodeBuild environment variable keys cannot start with CODEBUILD_"

_RECORD_SEPARATOR = re.compile(r"\}\s*,\s*\{")
_OPENING = re.compile(r"\[\s*\{")
_CLOSING = re.compile(r"\}\s*\]")
_UNESCAPED_COMMA = re.compile(r"(?<!\\),")


def _normalize(text: str) -> str:
    text = _RECORD_SEPARATOR.sub("},{", text)
    text = _OPENING.sub("[{", text)
    text = _CLOSING.sub("}]", text)
    return text.replace("\n", "").replace("\t", "").strip()


def _unescape(part: str) -> str:
    return part.strip().replace("\\,", ",")


def _parse_record(record: str, kind: EnvironmentVariableType) -> EnvironmentVariable:
    parts = _UNESCAPED_COMMA.split(record)
    if len(parts) != 2:
        raise ParseError(ENV_VARIABLE_SYNTAX_ERROR, details={"record": record})

    name, value = (_unescape(p) for p in parts)
    if not name or not value:
        raise ParseError(ENV_VARIABLE_SYNTAX_ERROR, details={"record": record})
    return EnvironmentVariable(name=name, value=value, type=kind)


def parse_environment_variables(
    text: str | None,
    kind: EnvironmentVariableType = EnvironmentVariableType.PLAINTEXT,
) -> list[EnvironmentVariable]:
    """Parse *text* into environment variables tagged with *kind*.

    Whitespace around the brackets and record separators is tolerated, and
    newlines and tabs are dropped. Inside a key or value a comma must be
    escaped as ``\\,``; it is returned as a literal comma. Duplicate names
    are kept in input order.

    Args:
        text: The user-supplied string, e.g. ``"[{FOO, bar}, {BAZ, a\\,b}]"``.
        kind: Plaintext or parameter-store reference.

    Returns:
        The parsed variables; empty when *text* is empty.

    Raises:
        ParseError: When *text* is not of the form ``[{k, v}, ...]`` or a
            record has an empty key or value.
    """
    if not text:
        return []

    normalized = _normalize(text)
    if (
        len(normalized) < 4
        or not normalized.startswith("[{")
        or not normalized.endswith("}]")
    ):
        raise ParseError(ENV_VARIABLE_SYNTAX_ERROR, details={"input": text})

    body = normalized[2:-2]
    return [_parse_record(record, kind) for record in body.split("},{")]
