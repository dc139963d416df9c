# SPDX-License-Identifier: MPL-2.0
# Copyright (c) 2025 Daniel Schmidt

"""HTTP protocol runner backed by httpx."""

import logging
import time
from typing import Any

import httpx

from tspec_runner.core.constants import DEFAULT_HTTP_HOST, DEFAULT_HTTP_SCHEME
from tspec_runner.core.models import Response, RunnerOptions, TestCase

logger = logging.getLogger(__name__)


def map_response(http_response: httpx.Response, duration: float) -> Response:
    """Convert an httpx response into an engine ``Response``.

    The envelope exposes ``status``, ``header``, ``body`` and ``responseTime``,
    plus the top-level fields of an object body for direct access.

    Args:
        http_response: Response returned by httpx
        duration: Elapsed time in milliseconds

    Returns:
        Response with body decoded from JSON where possible
    """
    try:
        body: Any = http_response.json()
    except ValueError:
        body = http_response.text

    headers = {key: str(value) for key, value in http_response.headers.items()}
    envelope: dict[str, Any] = {
        "status": http_response.status_code,
        "header": headers,
        "body": body,
        "responseTime": duration,
    }
    if isinstance(body, dict):
        envelope.update(body)

    return Response(
        status_code=http_response.status_code,
        body=body,
        headers=headers,
        response_time=duration,
        envelope=envelope,
    )


class HttpRunner:
    """Sends the request described by a test case with ``httpx.AsyncClient``.

    Recognised request fields are ``method``, ``path`` (or ``url``),
    ``headers``, ``query``, ``body`` and ``base_url``. Without ``base_url``
    the test case environment decides the target.
    """

    def __init__(self, options: RunnerOptions | None = None):
        self.options = options or RunnerOptions()

    def _resolve_url(self, test_case: TestCase) -> str:
        request = test_case.request or {}
        path = str(request.get("path") or request.get("url") or "/")
        if path.startswith(("http://", "https://")):
            return path

        base_url = request.get("base_url")
        if not base_url:
            if test_case.environment is not None:
                base_url = test_case.environment.base_url()
            else:
                base_url = f"{DEFAULT_HTTP_SCHEME}://{DEFAULT_HTTP_HOST}"
        base_url = str(base_url).rstrip("/")
        if not path.startswith("/"):
            path = f"/{path}"
        return f"{base_url}{path}"

    async def execute(self, test_case: TestCase) -> Response:
        request = test_case.request or {}
        method = str(request.get("method") or "GET").upper()
        url = self._resolve_url(test_case)
        headers = {**self.options.headers, **(request.get("headers") or {})}
        body = request.get("body")

        content_kwargs: dict[str, Any] = {}
        if isinstance(body, (dict, list)):
            content_kwargs["json"] = body
        elif body is not None:
            content_kwargs["content"] = str(body)

        logger.debug(f"HTTP {method} {url}")
        start_time = time.monotonic()
        try:
            async with httpx.AsyncClient(
                timeout=self.options.timeout,
                follow_redirects=self.options.follow_redirects,
                max_redirects=self.options.max_redirects,
                verify=self.options.verify,
            ) as client:
                http_response = await client.request(
                    method,
                    url,
                    headers=headers,
                    params=request.get("query"),
                    **content_kwargs,
                )
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            duration = (time.monotonic() - start_time) * 1000
            logger.debug(f"HTTP {method} {url} failed: {e}")
            return Response.error(e, duration)

        duration = (time.monotonic() - start_time) * 1000
        return map_response(http_response, duration)
