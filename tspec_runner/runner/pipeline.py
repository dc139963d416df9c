# SPDX-License-Identifier: MPL-2.0
# Copyright (c) 2025 Daniel Schmidt

"""Single test case pipeline: lifecycle hooks, runner call, assertions."""

import logging
import time
from pathlib import Path

from tspec_runner.assertion.engine import assert_results
from tspec_runner.core.errors import LifecycleActionError
from tspec_runner.core.models import (
    AssertionType,
    LifecycleAction,
    LifecycleScope,
    Response,
    RunnerOptions,
    TestCase,
)
from tspec_runner.core.types import AssertionResult, AssertionSummary, TestResult
from tspec_runner.lifecycle.context import LifecycleContext
from tspec_runner.lifecycle.executor import LifecycleExecutor
from tspec_runner.runner.registry import RunnerRegistry, create_runner, default_registry

logger = logging.getLogger(__name__)


def _expects_exception(test_case: TestCase) -> bool:
    return any(a.type == AssertionType.EXCEPTION.value for a in test_case.assertions)


def _network_error_result(
    test_case: TestCase, response: Response, context: LifecycleContext, duration: float
) -> TestResult:
    error_body = response.body if isinstance(response.body, dict) else {}
    return TestResult(
        test_case_id=test_case.id,
        passed=False,
        assertions=[
            AssertionResult(
                passed=False,
                type="network_error",
                message=f"Network error: {error_body.get('error') or 'Connection failed'}",
                expected="Successful connection",
                actual=f"status: 0 ({error_body.get('name') or 'Error'})",
            )
        ],
        summary=AssertionSummary(total=1, passed=0, failed=1),
        extracted=dict(context.extracted_vars),
        response=response,
        duration=duration,
    )


async def _run_hooks(
    hooks: LifecycleExecutor,
    actions: list[LifecycleAction],
    context: LifecycleContext,
    scope: LifecycleScope,
    phase: str,
) -> None:
    result = await hooks.execute_actions(actions, context, scope)
    if result.failed:
        raise LifecycleActionError(f"Lifecycle {phase} ({scope.value}) failed: {result.error}")


async def execute_test_case(
    test_case: TestCase,
    options: RunnerOptions | None = None,
    registry: RunnerRegistry | None = None,
    base_dir: str | Path | None = None,
    silent: bool = False,
) -> TestResult:
    """Execute one test case end to end.

    Test-level hooks run by scope: setup ``test`` then ``run`` before the
    request; teardown ``run`` and ``assert`` before the assertions and
    teardown ``test`` after them. A connection-level failure fails the test
    immediately unless it declares an ``exception`` assertion.

    Args:
        test_case: The test case to run
        options: Runner options
        registry: Runner registry (default: the global registry)
        base_dir: Directory for include libraries and relative paths; defaults
            to the directory of the test case's source file
        silent: Suppress ``log`` hook output

    Returns:
        TestResult with assertion verdicts and extracted variables

    Raises:
        RunnerNotFoundError: If no runner is registered for the protocol.
        LifecycleActionError: If a test-level hook fails.
        UnknownOperatorError: If an assertion uses an unrecognised operator.
        AssertionIncludeError: If an assertion include cannot be resolved.
    """
    runner_registry = registry or default_registry
    runner = create_runner(test_case.protocol, options, runner_registry)
    if base_dir is None:
        base_dir = Path(test_case.source_file).parent if test_case.source_file else Path(".")

    hooks = LifecycleExecutor(runner_registry, options, silent=silent, cwd=base_dir)
    context = LifecycleContext(
        variables=dict(test_case.variables), environment=test_case.environment
    )
    setup = test_case.lifecycle.setup if test_case.lifecycle else []
    teardown = test_case.lifecycle.teardown if test_case.lifecycle else []

    start_time = time.monotonic()
    await _run_hooks(hooks, setup, context, LifecycleScope.TEST, "setup")
    await _run_hooks(hooks, setup, context, LifecycleScope.RUN, "setup")

    logger.debug(f"Executing test case: {test_case.id}")
    response = await runner.execute(test_case)
    context.response = response
    duration = (time.monotonic() - start_time) * 1000

    if response.is_network_error and not _expects_exception(test_case):
        await _run_hooks(hooks, teardown, context, LifecycleScope.TEST, "teardown")
        return _network_error_result(test_case, response, context, duration)

    await _run_hooks(hooks, teardown, context, LifecycleScope.RUN, "teardown")
    await _run_hooks(hooks, teardown, context, LifecycleScope.ASSERT, "teardown")

    result = assert_results(response, test_case, base_dir)

    await _run_hooks(hooks, teardown, context, LifecycleScope.TEST, "teardown")

    result.extracted = {**context.extracted_vars, **result.extracted}
    result.duration = duration
    return result
