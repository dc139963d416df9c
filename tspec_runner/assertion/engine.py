# SPDX-License-Identifier: MPL-2.0
# Copyright (c) 2025 Daniel Schmidt

"""Assertion engine: turns a response and an assertion into a verdict.

Evaluation never raises for a failing or unevaluable assertion; extraction
errors, broken expressions and missing files all become ``passed=False``
results. Two things do raise:

    - ``UnknownOperatorError`` for an unrecognised comparison operator
    - ``AssertionIncludeError`` for an ``include`` that cannot be resolved

Both indicate a broken specification rather than a failing system under test.
"""

import json
import logging
from collections.abc import Callable
from pathlib import Path
from typing import Any

import yaml
from jinja2 import StrictUndefined
from jinja2.sandbox import SandboxedEnvironment

from tspec_runner.assertion.extractors import (
    coerce_to_number,
    coerce_to_string,
    extract_by_path,
    extract_json_path,
    extract_regex,
    extract_variables,
    extract_xml_path,
    parse_body,
)
from tspec_runner.assertion.operators import OPERATORS, compare_values
from tspec_runner.core.constants import (
    DEFAULT_ASSERTION_OPERATOR,
    FILE_CONTENT_DISPLAY_LIMIT,
)
from tspec_runner.core.errors import AssertionIncludeError, UnknownOperatorError
from tspec_runner.core.models import Assertion, AssertionType, Response, TestCase
from tspec_runner.core.types import AssertionResult, AssertionSummary, TestResult
from tspec_runner.utils.strings import truncate

logger = logging.getLogger(__name__)

# Expressions only see the names passed in explicitly
_EXPRESSION_ENV = SandboxedEnvironment(undefined=StrictUndefined)

AssertionHandler = Callable[[Response, Assertion, Path], AssertionResult]


def _dump(value: Any) -> str:
    return json.dumps(value, default=str)


def _expected(assertion: Assertion, *, with_pattern: bool = True) -> Any:
    candidates = [assertion.expected]
    if with_pattern:
        candidates.append(assertion.pattern)
    candidates.append(assertion.value)
    return next((c for c in candidates if c is not None), None)


def _operator(assertion: Assertion) -> str:
    """Operator of a comparing assertion, checked before anything is extracted."""
    operator = assertion.operator or DEFAULT_ASSERTION_OPERATOR
    if operator not in OPERATORS:
        raise UnknownOperatorError(operator)
    return operator

def assertion_data(response: Response) -> Any:
    """Data that path assertions query: the envelope, else the decoded body."""
    if response.envelope is not None:
        return response.envelope
    return parse_body(response.body)


def _path_assertion(
    response: Response,
    assertion: Assertion,
    kind: AssertionType,
    label: str,
    derive: Callable[[Any], Any],
    expected: Any,
) -> AssertionResult:
    """Shared flow for assertions that query the response by path."""
    expression = assertion.expression or ""
    operator = _operator(assertion)
    try:
        actual = derive(assertion_data(response))
    except ValueError as e:
        return AssertionResult(
            passed=False,
            type=kind.value,
            expression=expression,
            expected=expected,
            message=assertion.message or str(e),
        )

    passed = compare_values(actual, operator, expected)
    return AssertionResult(
        passed=passed,
        type=kind.value,
        expression=expression,
        operator=operator,
        expected=expected,
        actual=actual,
        message=(
            f"{label} {expression} {operator} assertion passed"
            if passed
            else assertion.message
            or f"{label} {expression}: expected {operator} {expected}, got {_dump(actual)}"
        ),
    )


def _assert_json_path(response: Response, assertion: Assertion, _: Path) -> AssertionResult:
    expression = assertion.expression or ""
    return _path_assertion(
        response,
        assertion,
        AssertionType.JSON_PATH,
        "JSONPath",
        lambda data: extract_json_path(data, expression),
        _expected(assertion),
    )


def _assert_string(response: Response, assertion: Assertion, _: Path) -> AssertionResult:
    expression = assertion.expression or ""
    return _path_assertion(
        response,
        assertion,
        AssertionType.STRING,
        "String",
        lambda data: coerce_to_string(extract_json_path(data, expression)),
        _expected(assertion),
    )


def _assert_number(response: Response, assertion: Assertion, _: Path) -> AssertionResult:
    expression = assertion.expression or ""
    operator = _operator(assertion)
    expected = _expected(assertion, with_pattern=False)
    try:
        raw_value = extract_json_path(assertion_data(response), expression)
    except ValueError as e:
        return AssertionResult(
            passed=False,
            type=AssertionType.NUMBER.value,
            expression=expression,
            expected=expected,
            message=assertion.message or str(e),
        )

    actual = coerce_to_number(raw_value)
    if actual is None and operator != "not_exists":
        return AssertionResult(
            passed=False,
            type=AssertionType.NUMBER.value,
            expression=expression,
            operator=operator,
            expected=expected,
            actual=raw_value,
            message=assertion.message
            or f"Number {expression}: value cannot be converted to number: {_dump(raw_value)}",
        )

    passed = compare_values(actual, operator, expected)
    return AssertionResult(
        passed=passed,
        type=AssertionType.NUMBER.value,
        expression=expression,
        operator=operator,
        expected=expected,
        actual=actual,
        message=(
            f"Number {expression} {operator} assertion passed"
            if passed
            else assertion.message
            or f"Number {expression}: expected {operator} {expected}, got {actual}"
        ),
    )


def _assert_regex(response: Response, assertion: Assertion, _: Path) -> AssertionResult:
    expression = assertion.expression or "$"
    pattern = assertion.pattern or ""

    def derive(data: Any) -> Any:
        source = coerce_to_string(extract_json_path(data, expression))
        if source is None:
            return None
        return extract_regex(source, pattern, assertion.extract_group)

    result = _path_assertion(
        response,
        assertion,
        AssertionType.REGEX,
        "Regex",
        derive,
        _expected(assertion, with_pattern=False),
    )
    if not result.passed and assertion.message is None and result.operator:
        result.message = (
            f"Regex {expression} (pattern: {pattern}): expected {result.operator} "
            f"{result.expected}, got {_dump(result.actual)}"
        )
    return result


def _assert_xml_path(response: Response, assertion: Assertion, _: Path) -> AssertionResult:
    expression = assertion.expression or ""
    operator = _operator(assertion)
    expected = _expected(assertion, with_pattern=False)
    body = response.body
    if isinstance(body, bytes):
        body = body.decode("utf-8", errors="replace")
    xml = body if isinstance(body, str) else _dump(body)
    try:
        actual = extract_xml_path(xml, expression)
    except ValueError as e:
        return AssertionResult(
            passed=False,
            type=AssertionType.XML_PATH.value,
            expression=expression,
            expected=expected,
            message=assertion.message or str(e),
        )

    passed = compare_values(actual, operator, expected)
    return AssertionResult(
        passed=passed,
        type=AssertionType.XML_PATH.value,
        expression=expression,
        operator=operator,
        expected=expected,
        actual=actual,
        message=(
            f"XPath {expression} {operator} assertion passed"
            if passed
            else assertion.message
            or f"XPath {expression}: expected {operator} {expected}, got {_dump(actual)}"
        ),
    )


def _assert_response_time(response: Response, assertion: Assertion, _: Path) -> AssertionResult:
    actual = response.response_time or 0
    max_ms = coerce_to_number(assertion.max_ms) if assertion.max_ms is not None else 0
    if max_ms is None:
        return AssertionResult(
            passed=False,
            type=AssertionType.RESPONSE_TIME.value,
            expected=assertion.max_ms,
            actual=f"{actual}ms",
            message=assertion.message or f"invalid max_ms: {assertion.max_ms!r}",
        )
    passed = actual <= max_ms
    return AssertionResult(
        passed=passed,
        type=AssertionType.RESPONSE_TIME.value,
        expected=f"<= {max_ms}ms",
        actual=f"{actual}ms",
        message=(
            f"Response time {actual}ms is within {max_ms}ms limit"
            if passed
            else assertion.message or f"Response time {actual}ms exceeds {max_ms}ms limit"
        ),
    )


def _assert_javascript(response: Response, assertion: Assertion, _: Path) -> AssertionResult:
    """Evaluate a sandboxed boolean expression over the response.

    The expression sees ``response``, ``body`` (decoded), ``headers`` and
    ``statusCode``; a truthy result passes.
    """
    source = assertion.source or ""
    try:
        evaluate = _EXPRESSION_ENV.compile_expression(source, undefined_to_none=False)
        result = evaluate(
            response=response,
            body=parse_body(response.body),
            headers=response.headers,
            statusCode=response.status_code,
        )
        passed = bool(result)
    except Exception as e:
        return AssertionResult(
            passed=False,
            type=AssertionType.JAVASCRIPT.value,
            message=assertion.message or f"Expression assertion error: {e}",
        )
    return AssertionResult(
        passed=passed,
        type=AssertionType.JAVASCRIPT.value,
        actual=result,
        message=(
            "Expression assertion passed"
            if passed
            else assertion.message or "Expression assertion failed"
        ),
    )


def _assert_file_exist(response: Response, assertion: Assertion, base_dir: Path) -> AssertionResult:
    file_path = assertion.expression or ""
    try:
        exists = (base_dir / file_path).is_file() if file_path else False
    except OSError as e:
        return AssertionResult(
            passed=False,
            type=AssertionType.FILE_EXIST.value,
            expression=file_path,
            expected="file exists",
            actual="error",
            message=assertion.message or f"File check error: {e}",
        )
    return AssertionResult(
        passed=exists,
        type=AssertionType.FILE_EXIST.value,
        expression=file_path,
        expected="file exists",
        actual="file exists" if exists else "file not found",
        message=(
            f"File exists: {file_path}"
            if exists
            else assertion.message or f"File not found: {file_path}"
        ),
    )


def _assert_file_read(response: Response, assertion: Assertion, base_dir: Path) -> AssertionResult:
    file_path = assertion.expression or ""
    operator = _operator(assertion)
    expected = _expected(assertion)
    full_path = base_dir / file_path
    if not file_path or not full_path.is_file():
        return AssertionResult(
            passed=False,
            type=AssertionType.FILE_READ.value,
            expression=file_path,
            expected="file exists",
            actual="file not found",
            message=assertion.message or f"File not found: {file_path}",
        )
    try:
        content = full_path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        return AssertionResult(
            passed=False,
            type=AssertionType.FILE_READ.value,
            expression=file_path,
            expected=expected,
            message=assertion.message or f"File read error: {e}",
        )

    passed = compare_values(content, operator, expected)
    return AssertionResult(
        passed=passed,
        type=AssertionType.FILE_READ.value,
        expression=file_path,
        operator=operator,
        expected=expected,
        actual=truncate(content, FILE_CONTENT_DISPLAY_LIMIT),
        message=(
            f"File {file_path} {operator} assertion passed"
            if passed
            else assertion.message
            or f"File {file_path}: expected {operator} {_dump(expected)}"
        ),
    )


def _assert_exception(response: Response, assertion: Assertion, _: Path) -> AssertionResult:
    """Pass when the request failed at the connection level."""
    error_text = ""
    if isinstance(response.body, dict):
        error_text = str(response.body.get("error") or "")
    expected = _expected(assertion)
    passed = response.is_network_error and (
        expected is None or str(expected) in error_text
    )
    return AssertionResult(
        passed=passed,
        type=AssertionType.EXCEPTION.value,
        expected=expected if expected is not None else "connection failure",
        actual=error_text or f"status {response.status_code}",
        message=(
            f"Request failed as expected: {error_text}"
            if passed
            else assertion.message or "Expected the request to fail"
        ),
    )


def _assert_status_code(response: Response, assertion: Assertion, _: Path) -> AssertionResult:
    actual = response.status_code
    expected = assertion.expected
    passed = compare_values(actual, "equals", expected)
    return AssertionResult(
        passed=passed,
        type=AssertionType.STATUS_CODE.value,
        expected=expected,
        actual=actual,
        message=(
            f"Status code is {expected}"
            if passed
            else assertion.message or f"Expected status {expected}, got {actual}"
        ),
        deprecated=True,
        migration_hint='Use json_path with expression "$.status" instead',
    )


def _assert_grpc_code(response: Response, assertion: Assertion, _: Path) -> AssertionResult:
    actual = response.grpc_code
    if actual is None and response.envelope is not None:
        actual = response.envelope.get("grpcCode")
    expected = assertion.expected
    passed = compare_values(actual, "equals", expected)
    return AssertionResult(
        passed=passed,
        type=AssertionType.GRPC_CODE.value,
        expected=expected,
        actual=actual,
        message=(
            f"gRPC code is {expected}"
            if passed
            else assertion.message or f"Expected gRPC code {expected}, got {actual}"
        ),
        deprecated=True,
        migration_hint='Use json_path with expression "$.grpcCode" instead',
    )


def _assert_header(response: Response, assertion: Assertion, _: Path) -> AssertionResult:
    header_name = assertion.name or ""
    operator = _operator(assertion)
    expected = assertion.value if assertion.value is not None else assertion.expected
    actual = next(
        (
            value
            for key, value in (response.headers or {}).items()
            if key.lower() == header_name.lower()
        ),
        None,
    )
    passed = compare_values(actual, operator, expected)
    return AssertionResult(
        passed=passed,
        type=AssertionType.HEADER.value,
        name=header_name,
        operator=operator,
        expected=expected,
        actual=actual,
        message=(
            f"Header {header_name} {operator} assertion passed"
            if passed
            else assertion.message
            or f"Header {header_name}: expected {operator} {expected}, got {actual}"
        ),
        deprecated=True,
        migration_hint=f"Use json_path with expression \"$.header['{header_name}']\" instead",
    )


def _assert_proto_field(response: Response, assertion: Assertion, _: Path) -> AssertionResult:
    field_path = assertion.path or ""
    operator = _operator(assertion)
    expected = _expected(assertion, with_pattern=False)
    actual = extract_by_path(parse_body(response.body), field_path)
    passed = compare_values(actual, operator, expected)
    return AssertionResult(
        passed=passed,
        type=AssertionType.PROTO_FIELD.value,
        path=field_path,
        operator=operator,
        expected=expected,
        actual=actual,
        message=(
            f"Proto field {field_path} {operator} assertion passed"
            if passed
            else assertion.message
            or f"Proto field {field_path}: expected {operator} {expected}, got {actual}"
        ),
        deprecated=True,
        migration_hint=f'Use json_path with expression "$.body.{field_path}" instead',
    )


ASSERTION_HANDLERS: dict[AssertionType, AssertionHandler] = {
    AssertionType.JSON_PATH: _assert_json_path,
    AssertionType.STRING: _assert_string,
    AssertionType.NUMBER: _assert_number,
    AssertionType.REGEX: _assert_regex,
    AssertionType.XML_PATH: _assert_xml_path,
    AssertionType.RESPONSE_TIME: _assert_response_time,
    AssertionType.JAVASCRIPT: _assert_javascript,
    AssertionType.FILE_EXIST: _assert_file_exist,
    AssertionType.FILE_READ: _assert_file_read,
    AssertionType.EXCEPTION: _assert_exception,
    AssertionType.STATUS_CODE: _assert_status_code,
    AssertionType.GRPC_CODE: _assert_grpc_code,
    AssertionType.HEADER: _assert_header,
    AssertionType.PROTO_FIELD: _assert_proto_field,
}


def load_assertion_include(include: str, base_dir: str | Path) -> tuple[Assertion, str]:
    """Resolve an ``include`` reference of the form ``library.yaml#definition_id``.

    Args:
        include: Include reference
        base_dir: Directory the library path is relative to

    Returns:
        Tuple of (resolved assertion, canonical reference used for cycle checks)

    Raises:
        AssertionIncludeError: If the file, its format or the definition is invalid.
    """
    file_part, _, definition_id = include.partition("#")
    full_path = (Path(base_dir) / file_part).resolve()
    if not full_path.is_file():
        raise AssertionIncludeError(f"Assertion include file not found: {full_path}")

    try:
        library = yaml.safe_load(full_path.read_text(encoding="utf-8"))
    except (OSError, yaml.YAMLError) as e:
        raise AssertionIncludeError(f"Cannot read assertion library {full_path}: {e}") from e

    definitions = library.get("definitions") if isinstance(library, dict) else None
    if not isinstance(definitions, list):
        raise AssertionIncludeError(f"Invalid assertion library format: {full_path}")

    for definition in definitions:
        if isinstance(definition, dict) and definition.get("id") == definition_id:
            config = {key: value for key, value in definition.items() if key != "id"}
            return Assertion.from_dict(config), f"{full_path}#{definition_id}"

    raise AssertionIncludeError(
        f"Assertion definition not found: {definition_id} in {full_path}"
    )


def run_assertion(
    response: Response,
    assertion: Assertion,
    base_dir: str | Path = ".",
    _include_chain: tuple[str, ...] = (),
) -> AssertionResult:
    """Evaluate one assertion against a response.

    ``include`` references are resolved first, one level at a time, until a
    concrete assertion is reached.

    Args:
        response: Response to evaluate
        assertion: Assertion to evaluate
        base_dir: Directory for include libraries and relative file paths

    Returns:
        The assertion verdict.

    Raises:
        UnknownOperatorError: If the assertion uses an unrecognised operator.
        AssertionIncludeError: If an include cannot be resolved or is circular.
    """
    if assertion.include:
        included, reference = load_assertion_include(assertion.include, base_dir)
        if reference in _include_chain:
            # A cycle aborts evaluation instead of producing a failed verdict
            chain = " -> ".join((*_include_chain, reference))
            raise AssertionIncludeError(f"Circular assertion include: {chain}")
        return run_assertion(response, included, base_dir, (*_include_chain, reference))

    try:
        kind = AssertionType(assertion.type)
    except ValueError:
        return AssertionResult(
            passed=False,
            type=assertion.type or "unknown",
            message=f"Unknown assertion type: {assertion.type}",
        )
    return ASSERTION_HANDLERS[kind](response, assertion, Path(base_dir))


def run_assertions(
    response: Response, assertions: list[Assertion], base_dir: str | Path = "."
) -> list[AssertionResult]:
    """Evaluate assertions in declaration order."""
    return [run_assertion(response, assertion, base_dir) for assertion in assertions]


def get_assertion_summary(results: list[AssertionResult]) -> AssertionSummary:
    """Count passed and failed verdicts."""
    return AssertionSummary.from_flags([result.passed for result in results])


def assert_results(
    response: Response, test_case: TestCase, base_dir: str | Path = "."
) -> TestResult:
    """Score a response against a test case's assertions and extract its variables.

    Args:
        response: Response returned by the runner
        test_case: Test case providing assertions and the ``extract`` map
        base_dir: Directory for include libraries and relative file paths

    Returns:
        TestResult whose ``passed`` is the AND of all assertion verdicts.
    """
    results = run_assertions(response, test_case.assertions, base_dir)
    return TestResult(
        test_case_id=test_case.id,
        passed=all(result.passed for result in results),
        assertions=results,
        summary=get_assertion_summary(results),
        extracted=extract_variables(response, test_case.extract),
        response=response,
    )
