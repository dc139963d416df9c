# SPDX-License-Identifier: MPL-2.0
# Copyright (c) 2025 Daniel Schmidt

"""Unit tests for the HTTP runner."""

import asyncio
import json
from collections.abc import Callable, Iterator
from unittest.mock import patch

import httpx
import pytest

from tspec_runner.core.models import EnvironmentConfig, RunnerOptions, TestCase
from tspec_runner.runner.http_runner import HttpRunner, map_response

RealAsyncClient = httpx.AsyncClient

Handler = Callable[[httpx.Request], httpx.Response]


@pytest.fixture()
def captured() -> list[httpx.Request]:
    return []


@pytest.fixture()
def transport(captured: list[httpx.Request]) -> Iterator[Callable[[Handler], None]]:
    """Route requests made by HttpRunner through an httpx.MockTransport."""
    handlers: list[Handler] = []

    def handle(request: httpx.Request) -> httpx.Response:
        captured.append(request)
        return handlers[-1](request)

    def client_factory(**kwargs: object) -> httpx.AsyncClient:
        return RealAsyncClient(transport=httpx.MockTransport(handle), **kwargs)

    with patch("tspec_runner.runner.http_runner.httpx.AsyncClient", side_effect=client_factory):
        yield handlers.append


class TestMapResponse:
    """Tests for converting httpx responses."""

    def test_json_body_is_flattened_into_envelope(self) -> None:
        http_response = httpx.Response(200, json={"id": 1, "name": "alice"})

        response = map_response(http_response, 12.5)

        assert response.status_code == 200
        assert response.body == {"id": 1, "name": "alice"}
        assert response.response_time == 12.5
        assert response.envelope is not None
        assert response.envelope["status"] == 200
        assert response.envelope["id"] == 1
        assert response.envelope["responseTime"] == 12.5
        assert response.envelope["header"]["content-type"] == "application/json"

    def test_text_body(self) -> None:
        response = map_response(httpx.Response(500, text="Internal error"), 1.0)

        assert response.body == "Internal error"
        assert response.envelope is not None
        assert response.envelope["body"] == "Internal error"


class TestHttpRunner:
    """Tests for request construction and error mapping."""

    def test_request_is_built_from_test_case(
        self, transport: Callable[[Handler], None], captured: list[httpx.Request]
    ) -> None:
        transport(lambda request: httpx.Response(201, json={"id": 9}))
        test_case = TestCase(
            id="create_user",
            protocol="http",
            request={
                "method": "post",
                "path": "/users",
                "headers": {"X-Trace": "abc"},
                "query": {"dry": "1"},
                "body": {"name": "dave"},
            },
            environment=EnvironmentConfig(host="api.test", port=8443, scheme="https"),
        )

        response = asyncio.run(
            HttpRunner(RunnerOptions(headers={"Accept": "application/json"})).execute(test_case)
        )

        request = captured[0]
        assert request.method == "POST"
        assert str(request.url) == "https://api.test:8443/users?dry=1"
        assert request.headers["X-Trace"] == "abc"
        assert request.headers["Accept"] == "application/json"
        assert json.loads(request.content) == {"name": "dave"}
        assert response.status_code == 201
        assert response.envelope is not None
        assert response.envelope["id"] == 9

    def test_base_url_in_request(
        self, transport: Callable[[Handler], None], captured: list[httpx.Request]
    ) -> None:
        transport(lambda request: httpx.Response(200, text="ok"))
        test_case = TestCase(
            id="ping",
            protocol="http",
            request={"path": "health", "base_url": "http://svc.local:9000/api/"},
        )

        asyncio.run(HttpRunner().execute(test_case))

        assert str(captured[0].url) == "http://svc.local:9000/api/health"

    def test_absolute_url_and_default_host(self) -> None:
        runner = HttpRunner()

        assert (
            runner._resolve_url(TestCase(id="a", protocol="http", request={"url": "https://x.test/a"}))
            == "https://x.test/a"
        )
        assert runner._resolve_url(TestCase(id="b", protocol="http")) == "http://localhost/"

    def test_connection_error_becomes_status_zero(
        self, transport: Callable[[Handler], None]
    ) -> None:
        def refuse(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("Connection refused", request=request)

        transport(refuse)
        test_case = TestCase(id="down", protocol="http", request={"path": "/"})

        response = asyncio.run(HttpRunner().execute(test_case))

        assert response.status_code == 0
        assert response.is_network_error
        assert response.body == {"error": "Connection refused", "name": "ConnectError"}
