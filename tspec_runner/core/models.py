# SPDX-License-Identifier: MPL-2.0
# Copyright (c) 2025 Daniel Schmidt

"""Input data models consumed by the execution engine.

These structures are produced by a spec parser (see ``tspec_runner.parser``)
and are treated as read-only by the scheduler, suite runner and assertion
engine. Each model offers a ``from_dict`` constructor for YAML-loaded data.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from tspec_runner.core.constants import (
    DEFAULT_HTTP_HOST,
    DEFAULT_HTTP_SCHEME,
    DEFAULT_PORTS,
    DEFAULT_SUITE_CONCURRENCY,
    DEFAULT_HTTP_TIMEOUT,
)
from tspec_runner.core.errors import SpecificationError


class AssertionType(str, Enum):
    """Assertion kinds understood by the assertion engine."""

    JSON_PATH = "json_path"
    STRING = "string"
    NUMBER = "number"
    REGEX = "regex"
    XML_PATH = "xml_path"
    RESPONSE_TIME = "response_time"
    JAVASCRIPT = "javascript"
    FILE_EXIST = "file_exist"
    FILE_READ = "file_read"
    EXCEPTION = "exception"
    # Deprecated, kept for older specs
    STATUS_CODE = "status_code"
    GRPC_CODE = "grpc_code"
    HEADER = "header"
    PROTO_FIELD = "proto_field"


class ActionType(str, Enum):
    """Lifecycle hook action kinds."""

    SCRIPT = "script"
    HTTP = "http"
    GRPC = "grpc"
    EXTRACT = "extract"
    WAIT = "wait"
    LOG = "log"
    OUTPUT = "output"


class LifecycleScope(str, Enum):
    """Phase of a single test case in which a test-level action runs."""

    TEST = "test"
    RUN = "run"
    ASSERT = "assert"
    DATA = "data"


def _require_mapping(data: Any, what: str, path: str | None = None) -> dict[str, Any]:
    if not isinstance(data, dict):
        raise SpecificationError(
            f"{what} must be a mapping, got {type(data).__name__}", path
        )
    return data


@dataclass(frozen=True)
class Assertion:
    """One assertion as written in a spec file.

    Only the fields relevant to ``type`` are populated. ``include`` points at a
    shared definition (``library.yaml#definition_id``) and replaces the
    assertion entirely when resolved.
    """

    type: str = ""
    include: str | None = None
    expression: str | None = None
    operator: str | None = None
    expected: Any = None
    value: Any = None
    pattern: str | None = None
    extract_group: int = 0
    max_ms: float | None = None
    source: str | None = None
    path: str | None = None
    name: str | None = None
    message: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Assertion":
        data = _require_mapping(data, "assertion")
        known = {name: data[name] for name in cls.__dataclass_fields__ if name in data}
        if known.get("extract_group") is None:
            known.pop("extract_group", None)
        known["type"] = str(known.get("type") or "")
        return cls(**known)


@dataclass
class Response:
    """Protocol-agnostic result of a single request.

    ``response_time`` is in milliseconds. ``envelope`` is the normalized view
    (``status``, ``header``, ``body``, ``responseTime`` plus top-level body
    fields) that lets path assertions work the same way for every protocol.
    """

    status_code: int = 0
    body: Any = None
    headers: dict[str, str] = field(default_factory=dict)
    response_time: float = 0.0
    grpc_code: int | None = None
    envelope: dict[str, Any] | None = None

    @classmethod
    def error(cls, error: BaseException, response_time: float = 0.0) -> "Response":
        """Build the status-0 response used to report connection failures."""
        body = {"error": str(error), "name": type(error).__name__}
        envelope: dict[str, Any] = {
            "status": 0,
            "header": {},
            "body": body,
            "responseTime": response_time,
            **body,
        }
        return cls(
            status_code=0,
            body=body,
            headers={},
            response_time=response_time,
            envelope=envelope,
        )

    @property
    def is_network_error(self) -> bool:
        """True when the runner could not obtain a response at all."""
        return self.status_code == 0


@dataclass(frozen=True)
class EnvironmentConfig:
    """Target environment of a test or suite."""

    scheme: str | None = None
    host: str | None = None
    port: str | int | None = None
    variables: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> "EnvironmentConfig | None":
        if data is None:
            return None
        data = _require_mapping(data, "environment")
        return cls(
            scheme=data.get("scheme"),
            host=data.get("host"),
            port=data.get("port"),
            variables=dict(data.get("variables") or {}),
        )

    def base_url(self, default_scheme: str = DEFAULT_HTTP_SCHEME) -> str:
        """Build ``scheme://host[:port][base_path]``, omitting ports 80 and 443."""
        url = f"{self.scheme or default_scheme}://{self.host or DEFAULT_HTTP_HOST}"
        if self.port is not None and str(self.port) not in DEFAULT_PORTS:
            url += f":{self.port}"
        base_path = self.variables.get("base_path")
        if base_path:
            url += str(base_path)
        return url


@dataclass(frozen=True)
class LifecycleAction:
    """A single hook action; ``action`` selects which payload fields apply."""

    action: ActionType
    scope: LifecycleScope | None = None
    source: str | None = None
    vars: dict[str, str] = field(default_factory=dict)
    request: dict[str, Any] = field(default_factory=dict)
    extract: dict[str, str] = field(default_factory=dict)
    duration: str | None = None
    message: str | None = None
    level: str = "info"
    config: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "LifecycleAction":
        data = _require_mapping(data, "lifecycle action")
        try:
            action = ActionType(data.get("action"))
        except ValueError:
            raise SpecificationError(
                f"Unknown lifecycle action type: {data.get('action')}"
            ) from None
        scope = data.get("scope")
        try:
            parsed_scope = LifecycleScope(scope) if scope is not None else None
        except ValueError:
            raise SpecificationError(f"Unknown lifecycle scope: {scope}") from None
        duration = data.get("duration")
        return cls(
            action=action,
            scope=parsed_scope,
            source=data.get("source"),
            vars=dict(data.get("vars") or {}),
            request=dict(data.get("request") or {}),
            extract=dict(data.get("extract") or {}),
            duration=str(duration) if duration is not None else None,
            message=data.get("message"),
            level=str(data.get("level") or "info"),
            config=dict(data.get("config") or {}),
        )


def _parse_actions(data: Any, what: str) -> list[LifecycleAction]:
    if data is None:
        return []
    if not isinstance(data, list):
        raise SpecificationError(f"{what} must be a list of actions")
    return [LifecycleAction.from_dict(item) for item in data]


@dataclass(frozen=True)
class LifecycleConfig:
    """Setup and teardown action lists."""

    setup: list[LifecycleAction] = field(default_factory=list)
    teardown: list[LifecycleAction] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> "LifecycleConfig | None":
        if data is None:
            return None
        data = _require_mapping(data, "lifecycle")
        return cls(
            setup=_parse_actions(data.get("setup"), "lifecycle.setup"),
            teardown=_parse_actions(data.get("teardown"), "lifecycle.teardown"),
        )


@dataclass(frozen=True)
class TestCase:
    """One concrete, fully resolved protocol test.

    ``id`` is a display key and is not guaranteed to be unique. ``request`` is
    the protocol-specific payload handed to the runner unchanged.
    """

    id: str
    protocol: str | None
    request: dict[str, Any] | None = None
    assertions: list[Assertion] = field(default_factory=list)
    description: str = ""
    extract: dict[str, str] = field(default_factory=dict)
    lifecycle: LifecycleConfig | None = None
    environment: EnvironmentConfig | None = None
    variables: dict[str, Any] = field(default_factory=dict)
    metadata: dict[str, Any] = field(default_factory=dict)
    source_file: str | None = None


@dataclass(frozen=True)
class RunnerOptions:
    """Options forwarded to protocol runners."""

    timeout: float = DEFAULT_HTTP_TIMEOUT
    follow_redirects: bool = True
    max_redirects: int = 20
    verify: bool = True
    headers: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class ExecutionConfig:
    """Execution policy of a suite."""

    parallel_tests: bool = False
    parallel_suites: bool = False
    concurrency: int = DEFAULT_SUITE_CONCURRENCY
    fail_fast: bool = False

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> "ExecutionConfig":
        if not data:
            return cls()
        data = _require_mapping(data, "execution")
        concurrency = int(data.get("concurrency") or DEFAULT_SUITE_CONCURRENCY)
        if concurrency < 1:
            raise SpecificationError("execution.concurrency must be at least 1")
        return cls(
            parallel_tests=bool(data.get("parallel_tests", False)),
            parallel_suites=bool(data.get("parallel_suites", False)),
            concurrency=concurrency,
            fail_fast=bool(data.get("fail_fast", False)),
        )


@dataclass(frozen=True)
class TestReference:
    """A ``tests`` entry: a single ``file`` or a ``files`` glob pattern."""

    file: str | None = None
    files: str | None = None
    skip: bool = False
    only: bool = False
    variables: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict[str, Any] | str) -> "TestReference":
        if isinstance(data, str):
            return cls(file=data)
        data = _require_mapping(data, "test reference")
        if not data.get("file") and not data.get("files"):
            raise SpecificationError("test reference requires 'file' or 'files'")
        return cls(
            file=data.get("file"),
            files=data.get("files"),
            skip=bool(data.get("skip", False)),
            only=bool(data.get("only", False)),
            variables=dict(data.get("variables") or {}),
        )


@dataclass(frozen=True)
class SuiteReference:
    """A nested ``suites`` entry."""

    file: str
    skip: bool = False

    @classmethod
    def from_dict(cls, data: dict[str, Any] | str) -> "SuiteReference":
        if isinstance(data, str):
            return cls(file=data)
        data = _require_mapping(data, "suite reference")
        if not data.get("file"):
            raise SpecificationError("suite reference requires 'file'")
        return cls(file=data["file"], skip=bool(data.get("skip", False)))


@dataclass(frozen=True)
class SuiteDefinition:
    """A named collection of test files, nested suites, hooks and policy."""

    name: str
    description: str = ""
    environment: EnvironmentConfig | None = None
    variables: dict[str, Any] = field(default_factory=dict)
    lifecycle: LifecycleConfig | None = None
    before_each: list[LifecycleAction] = field(default_factory=list)
    after_each: list[LifecycleAction] = field(default_factory=list)
    execution: ExecutionConfig = field(default_factory=ExecutionConfig)
    tests: list[TestReference] = field(default_factory=list)
    suites: list[SuiteReference] = field(default_factory=list)
    metadata: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict[str, Any], path: str | None = None) -> "SuiteDefinition":
        """Build a suite from the mapping under a ``suite:`` root key."""
        data = _require_mapping(data, "suite", path)
        name = data.get("name")
        if not name:
            raise SpecificationError("suite requires a 'name'", path)
        try:
            return cls(
                name=str(name),
                description=str(data.get("description") or ""),
                environment=EnvironmentConfig.from_dict(data.get("environment")),
                variables=dict(data.get("variables") or {}),
                lifecycle=LifecycleConfig.from_dict(data.get("lifecycle")),
                before_each=_parse_actions(data.get("before_each"), "before_each"),
                after_each=_parse_actions(data.get("after_each"), "after_each"),
                execution=ExecutionConfig.from_dict(data.get("execution")),
                tests=[TestReference.from_dict(t) for t in data.get("tests") or []],
                suites=[SuiteReference.from_dict(s) for s in data.get("suites") or []],
                metadata=dict(data.get("metadata") or {}),
            )
        except SpecificationError as e:
            if e.path is None and path is not None:
                raise SpecificationError(str(e), path) from e
            raise
