# SPDX-License-Identifier: MPL-2.0
# Copyright (c) 2025 Daniel Schmidt

"""String utility functions for tspec-runner."""

import re
from typing import Any

_VARIABLE_PATTERN = re.compile(r"\$\{([^}]+)\}")
_DURATION_PATTERN = re.compile(r"^(\d+(?:\.\d+)?)(ms|s|m|h)?$", re.IGNORECASE)
_DURATION_FACTORS = {"ms": 1.0, "s": 1000.0, "m": 60_000.0, "h": 3_600_000.0}


def substitute_variables(text: str, variables: dict[str, Any]) -> str:
    """Replace ``${name}`` placeholders with values from ``variables``.

    Unknown placeholders are left untouched.

    Examples:
        >>> substitute_variables("user=${user}", {"user": "alice"})
        'user=alice'
        >>> substitute_variables("token=${missing}", {})
        'token=${missing}'
    """

    def _replace(match: re.Match[str]) -> str:
        key = match.group(1).strip()
        if key in variables and variables[key] is not None:
            return str(variables[key])
        return match.group(0)

    return _VARIABLE_PATTERN.sub(_replace, text)


def parse_duration(duration: str | int | float) -> float:
    """Parse a duration such as ``500``, ``500ms``, ``2s``, ``1m`` or ``1h``.

    Args:
        duration: Duration string; a bare number is interpreted as milliseconds.

    Returns:
        Duration in milliseconds.

    Raises:
        ValueError: If the string is not a valid duration.
    """
    match = _DURATION_PATTERN.match(str(duration).strip())
    if not match:
        raise ValueError(f"Invalid duration format: {duration}")
    unit = (match.group(2) or "ms").lower()
    return float(match.group(1)) * _DURATION_FACTORS[unit]


def truncate(text: str, limit: int) -> str:
    """Shorten ``text`` to ``limit`` characters, marking the cut with ``...``."""
    if len(text) > limit:
        return text[:limit] + "..."
    return text
