from __future__ import annotations

import json
from typing import Any

from codebuild_runner.core.exceptions import ParseError

INVALID_SECONDARY_ERROR = "Invalid secondary source/artifacts"


def parse_data_list(text: str) -> list[dict[str, Any]]:
    """Parse a JSON array of objects (secondary sources, versions or artifacts).

    The objects are passed to the service as written, so keys use the
    service's camelCase names, e.g. ``[{"sourceIdentifier": "src2",
    "type": "S3", "location": "bucket/key.zip"}]``.

    Raises:
        ParseError: When *text* is not valid JSON or not a list of objects.
    """
    if not text:
        return []
    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ParseError(INVALID_SECONDARY_ERROR, details={"error": str(exc)}) from exc

    if not isinstance(data, list) or not all(isinstance(item, dict) for item in data):
        raise ParseError(
            INVALID_SECONDARY_ERROR,
            details={"error": "expected a JSON array of objects"},
        )
    return data
