# SPDX-License-Identifier: MPL-2.0
# Copyright (c) 2025 Daniel Schmidt

"""Shared fixtures for unit tests."""

import asyncio
import textwrap
from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest

from tspec_runner.core.models import Response, TestCase
from tspec_runner.runner.registry import RunnerRegistry


def json_response(body: Any, status: int = 200, response_time: float = 5.0) -> Response:
    """Build a response the way the HTTP runner maps a JSON reply."""
    envelope: dict[str, Any] = {
        "status": status,
        "header": {"content-type": "application/json"},
        "body": body,
        "responseTime": response_time,
    }
    if isinstance(body, dict):
        envelope.update(body)
    return Response(
        status_code=status,
        body=body,
        headers={"content-type": "application/json"},
        response_time=response_time,
        envelope=envelope,
    )


class FakeRunner:
    """Runner double that answers by request path and records every call.

    Tracks the number of simultaneously running calls so that concurrency
    limits can be asserted.
    """

    def __init__(
        self,
        responses: dict[str, Response] | None = None,
        default: Response | None = None,
        delay: float = 0.0,
    ):
        self.responses = responses or {}
        self.default = default or json_response({})
        self.delay = delay
        self.calls: list[TestCase] = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def execute(self, test_case: TestCase) -> Response:
        self.calls.append(test_case)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.delay)
        finally:
            self.in_flight -= 1
        path = (test_case.request or {}).get("path")
        return self.responses.get(path, self.default)

    @property
    def called_paths(self) -> list[str]:
        return [(tc.request or {}).get("path") for tc in self.calls]


@pytest.fixture()
def make_response() -> Callable[..., Response]:
    """Factory for JSON responses with a populated envelope."""
    return json_response


@pytest.fixture()
def fake_runner() -> FakeRunner:
    return FakeRunner()


@pytest.fixture()
def fake_registry(fake_runner: FakeRunner) -> RunnerRegistry:
    """Registry whose ``http`` runner is the shared ``fake_runner``."""
    registry = RunnerRegistry()
    registry.register("http", lambda options: fake_runner)
    return registry


@pytest.fixture()
def write_file(tmp_path: Path) -> Callable[[str, str], Path]:
    """Write dedented text below ``tmp_path`` and return the file path."""

    def _write(relative_path: str, content: str) -> Path:
        path = tmp_path / relative_path
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(textwrap.dedent(content).lstrip(), encoding="utf-8")
        return path

    return _write
