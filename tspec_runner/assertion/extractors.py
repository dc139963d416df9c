# SPDX-License-Identifier: MPL-2.0
# Copyright (c) 2025 Daniel Schmidt

"""Value extraction primitives shared by assertions and lifecycle hooks.

Path queries use JSONPath (jsonpath-ng extended grammar) over structured data
and XPath (lxml) over XML text. A path query yields a single value when it
matches exactly once, a list when it matches several times and ``None`` when
nothing matches. Malformed expressions raise ``ValueError``.
"""

import json
import logging
import math
import re
from functools import lru_cache
from typing import Any

from jsonpath_ng.ext import parse as parse_jsonpath
from lxml import etree

from tspec_runner.core.models import Response

logger = logging.getLogger(__name__)

_XML_PARSER = etree.XMLParser(resolve_entities=False, no_network=True)


@lru_cache(maxsize=512)
def _compile_jsonpath(expression: str) -> Any:
    return parse_jsonpath(expression)


def _collapse(matches: list[Any]) -> Any:
    if not matches:
        return None
    if len(matches) == 1:
        return matches[0]
    return matches


def extract_json_path(data: Any, expression: str) -> Any:
    """Evaluate a JSONPath expression against ``data``.

    Args:
        data: Structured data (dicts, lists, scalars)
        expression: JSONPath expression, e.g. ``$.user.id``

    Returns:
        The single match, a list of matches, or None when nothing matched.

    Raises:
        ValueError: If the expression cannot be parsed or evaluated.
    """
    try:
        compiled = _compile_jsonpath(expression)
        matches = [match.value for match in compiled.find(data)]
    except Exception as e:
        raise ValueError(f"JSONPath extraction failed: {expression} - {e}") from e
    return _collapse(matches)


def extract_by_path(data: Any, path: str) -> Any:
    """Walk a dotted path (``a.b.0.c``) through dicts and lists."""
    current = data
    for part in path.split("."):
        if current is None:
            return None
        if isinstance(current, dict):
            current = current.get(part)
        elif isinstance(current, list) and part.lstrip("-").isdigit():
            index = int(part)
            current = current[index] if -len(current) <= index < len(current) else None
        else:
            return None
    return current


def extract_regex(source: str, pattern: str, group: int = 0) -> str | None:
    """Return capture ``group`` of the first ``pattern`` match in ``source``.

    Raises:
        ValueError: If the pattern is invalid or the group does not exist.
    """
    try:
        match = re.search(pattern, source)
        if match is None:
            return None
        return match.group(group)
    except (re.error, IndexError) as e:
        raise ValueError(f"Regex extraction failed: {pattern} - {e}") from e


def _xml_value(node: Any) -> Any:
    if isinstance(node, etree._Element):
        return node.text
    if isinstance(node, str):
        return str(node)
    return node


def extract_xml_path(xml: str, expression: str) -> Any:
    """Evaluate an XPath expression against an XML document.

    Element matches are reported by their text content; attribute and text
    matches as plain strings; XPath functions (``count()`` etc.) as-is.

    Raises:
        ValueError: If the document or the expression is invalid.
    """
    try:
        root = etree.fromstring(xml.encode("utf-8"), parser=_XML_PARSER)
        result = root.xpath(expression)
    except (etree.XMLSyntaxError, etree.XPathError, ValueError) as e:
        raise ValueError(f"XPath extraction failed: {expression} - {e}") from e
    if isinstance(result, list):
        return _collapse([_xml_value(node) for node in result])
    return _xml_value(result)


def coerce_to_string(value: Any) -> str | None:
    """Stringify a value compactly; ``None`` stays ``None``.

    Examples:
        >>> coerce_to_string({"a": 1})
        '{"a":1}'
        >>> coerce_to_string(True)
        'true'
    """
    if value is None:
        return None
    if isinstance(value, str):
        return value
    return json.dumps(value, separators=(",", ":"), default=str)


def coerce_to_number(value: Any) -> int | float | None:
    """Best-effort numeric conversion; unparseable values and NaN give ``None``."""
    if value is None:
        return None
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, (int, float)):
        return None if isinstance(value, float) and math.isnan(value) else value
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            return int(text)
        except ValueError:
            pass
        try:
            number = float(text)
        except ValueError:
            return None
        return None if math.isnan(number) else number
    return None


def parse_body(body: Any) -> Any:
    """Decode a JSON string body; other bodies are returned unchanged."""
    if isinstance(body, (str, bytes)):
        try:
            return json.loads(body)
        except ValueError:
            return body.decode("utf-8", errors="replace") if isinstance(body, bytes) else body
    return body


def extract_variables(response: Response, extract: dict[str, str]) -> dict[str, Any]:
    """Extract named variables from a response body via JSONPath.

    A variable whose expression fails is set to ``None`` rather than raising.

    Args:
        response: The response to read from
        extract: Mapping of variable name to JSONPath expression

    Returns:
        Mapping of variable name to extracted value
    """
    if not extract:
        return {}
    body = parse_body(response.body)
    extracted: dict[str, Any] = {}
    for name, expression in extract.items():
        try:
            extracted[name] = extract_json_path(body, expression)
        except ValueError as e:
            logger.debug(f"Extraction of '{name}' failed: {e}")
            extracted[name] = None
    return extracted
