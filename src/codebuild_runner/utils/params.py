from __future__ import annotations

import re
from collections.abc import Mapping

# $NAME or ${NAME}
_REFERENCE = re.compile(r"\$(?:\{([A-Za-z_][A-Za-z0-9_.]*)\}|([A-Za-z_][A-Za-z0-9_]*))")


def expand_parameters(value: str, environment: Mapping[str, str]) -> str:
    """Expand ``$NAME`` and ``${NAME}`` references from *environment*.

    References to names missing from *environment* are left untouched, so a
    literal ``$HOME`` in a buildspec survives when the host does not define it.
    ``None`` expands to the empty string.

    Args:
        value: The raw field value.
        environment: Host build parameters / environment variables.

    Returns:
        The expanded string.
    """
    if not value:
        return ""

    def _substitute(match: re.Match[str]) -> str:
        name = match.group(1) or match.group(2)
        if name in environment:
            return environment[name]
        return match.group(0)

    return _REFERENCE.sub(_substitute, value)
