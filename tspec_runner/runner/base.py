# SPDX-License-Identifier: MPL-2.0
# Copyright (c) 2025 Daniel Schmidt

"""Protocol runner interface."""

from collections.abc import Callable
from typing import Protocol

from tspec_runner.core.models import Response, RunnerOptions, TestCase


class Runner(Protocol):
    """Executes one test case against its target and returns the response.

    Connection-level failures should be reported as a status-0 ``Response``
    (see ``Response.error``) rather than raised, so that ``exception``
    assertions can observe them.
    """

    async def execute(self, test_case: TestCase) -> Response: ...


RunnerFactory = Callable[[RunnerOptions], Runner]
