# SPDX-License-Identifier: MPL-2.0
# Copyright (c) 2025 Daniel Schmidt

"""Worker-pool scheduler for flat lists of test cases."""

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable

from tspec_runner.core.constants import DEFAULT_CONCURRENCY, DEFAULT_CONCURRENCY_PER_TYPE
from tspec_runner.core.models import RunnerOptions, TestCase
from tspec_runner.core.types import ScheduleResult, TestResult
from tspec_runner.runner.pipeline import execute_test_case
from tspec_runner.runner.registry import RunnerRegistry

logger = logging.getLogger(__name__)

TestExecutor = Callable[[TestCase, RunnerOptions | None], Awaitable[TestResult]]

_UNKNOWN_PROTOCOL = "unknown"


class TestScheduler:
    """Runs independent test cases through a bounded pool of workers.

    Each worker takes the next test case from a shared FIFO queue, executes
    it and records the result, until the queue is drained. Results are kept
    in completion order.
    """

    def __init__(
        self,
        executor: TestExecutor | None = None,
        registry: RunnerRegistry | None = None,
    ):
        """Initialize the scheduler.

        Args:
            executor: Coroutine executing one test case; defaults to the
                runner pipeline
            registry: Runner registry used by the default executor
        """
        self.registry = registry
        self.executor = executor or self._execute_test_case

    async def _execute_test_case(
        self, test_case: TestCase, runner_options: RunnerOptions | None
    ) -> TestResult:
        return await execute_test_case(test_case, runner_options, self.registry)

    async def _execute_safely(
        self, test_case: TestCase, runner_options: RunnerOptions | None
    ) -> TestResult:
        start_time = time.monotonic()
        try:
            return await self.executor(test_case, runner_options)
        except Exception as e:
            logger.warning(f"Test case {test_case.id} failed to execute: {e}")
            result = TestResult.from_error(test_case, e)
            result.duration = (time.monotonic() - start_time) * 1000
            return result

    async def _run_pool(
        self,
        test_cases: list[TestCase],
        concurrency: int,
        runner_options: RunnerOptions | None,
        results: list[TestResult],
    ) -> None:
        if concurrency < 1:
            raise ValueError(f"concurrency must be at least 1, got {concurrency}")

        queue: asyncio.Queue[TestCase] = asyncio.Queue()
        for test_case in test_cases:
            queue.put_nowait(test_case)

        async def worker() -> None:
            while True:
                try:
                    test_case = queue.get_nowait()
                except asyncio.QueueEmpty:
                    return
                results.append(await self._execute_safely(test_case, runner_options))

        worker_count = min(concurrency, len(test_cases))
        await asyncio.gather(*(worker() for _ in range(worker_count)))

    async def schedule(
        self,
        test_cases: list[TestCase],
        concurrency: int = DEFAULT_CONCURRENCY,
        runner_options: RunnerOptions | None = None,
    ) -> ScheduleResult:
        """Execute test cases with at most ``concurrency`` in flight.

        Args:
            test_cases: Independent test cases
            concurrency: Maximum number of simultaneously running test cases
            runner_options: Options forwarded to the executor

        Returns:
            ScheduleResult with results in completion order

        Raises:
            ValueError: If ``concurrency`` is less than 1.
        """
        start_time = time.monotonic()
        results: list[TestResult] = []
        logger.debug(f"Scheduling {len(test_cases)} test case(s), concurrency={concurrency}")
        await self._run_pool(test_cases, concurrency, runner_options, results)
        return ScheduleResult.from_results(results, (time.monotonic() - start_time) * 1000)

    async def schedule_by_type(
        self,
        test_cases: list[TestCase],
        concurrency_per_type: int = DEFAULT_CONCURRENCY_PER_TYPE,
        runner_options: RunnerOptions | None = None,
    ) -> ScheduleResult:
        """Execute test cases in one pool per protocol, all pools concurrently.

        Test cases without a protocol share one pool. At most
        ``concurrency_per_type`` test cases of each protocol are in flight.
        """
        start_time = time.monotonic()
        by_protocol: dict[str, list[TestCase]] = {}
        for test_case in test_cases:
            by_protocol.setdefault(test_case.protocol or _UNKNOWN_PROTOCOL, []).append(
                test_case
            )

        results: list[TestResult] = []
        await asyncio.gather(
            *(
                self._run_pool(group, concurrency_per_type, runner_options, results)
                for group in by_protocol.values()
            )
        )
        return ScheduleResult.from_results(results, (time.monotonic() - start_time) * 1000)
