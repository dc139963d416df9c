# SPDX-License-Identifier: MPL-2.0
# Copyright (c) 2025 Daniel Schmidt

"""Hierarchical suite execution.

A suite runs its setup hooks, then its test files (sequentially or through a
bounded worker pool), then its nested suites, then its teardown hooks. Test
files and nested suites fold their outcomes into the suite statistics.
"""

import asyncio
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any

from tspec_runner.core.models import (
    EnvironmentConfig,
    RunnerOptions,
    SuiteDefinition,
    TestCase,
)
from tspec_runner.core.types import (
    SuiteResult,
    SuiteStats,
    SuiteStatus,
    SuiteTestResult,
    TestResult,
    TestStatus,
)
from tspec_runner.lifecycle.context import LifecycleContext
from tspec_runner.lifecycle.executor import LifecycleExecutor
from tspec_runner.parser.base import SpecParser
from tspec_runner.parser.yaml_parser import YamlSpecParser
from tspec_runner.runner.pipeline import execute_test_case
from tspec_runner.runner.registry import RunnerRegistry
from tspec_runner.scheduler.scheduler import TestExecutor
from tspec_runner.suite.resolver import ResolvedTestFile, resolve_test_files

logger = logging.getLogger(__name__)

FAIL_FAST_SKIP_MESSAGE = "Skipped due to fail-fast"


@dataclass
class SuiteRunnerOptions:
    """Per-invocation options of ``SuiteRunner.execute_suite``.

    Attributes:
        params: Caller parameters, overriding suite variables
        env: Environment variable overrides
        extracted: Values extracted by a parent suite
        cwd: Directory test references resolve against (default: suite dir)
        silent: Suppress ``log`` hook output
        on_test_start: Called with the file path before a test file runs
        on_test_complete: Called with the file path and its result
        on_suite_start: Called with the suite name once parsed
        on_suite_complete: Called with the suite name and its result
    """

    params: dict[str, Any] = field(default_factory=dict)
    env: dict[str, str] = field(default_factory=dict)
    extracted: dict[str, Any] = field(default_factory=dict)
    cwd: str | Path | None = None
    silent: bool = False
    on_test_start: Callable[[str], None] | None = None
    on_test_complete: Callable[[str, SuiteTestResult], None] | None = None
    on_suite_start: Callable[[str], None] | None = None
    on_suite_complete: Callable[[str, SuiteResult], None] | None = None


@dataclass
class _SuiteExecution:
    """Mutable state of one suite invocation."""

    suite: SuiteDefinition
    path: Path
    base_dir: Path
    options: SuiteRunnerOptions
    context: LifecycleContext
    hooks: LifecycleExecutor
    stats: SuiteStats = field(default_factory=SuiteStats)
    tests: list[SuiteTestResult] = field(default_factory=list)
    stopped: bool = False

    @property
    def fail_fast(self) -> bool:
        return self.suite.execution.fail_fast


def _elapsed_ms(start_time: float) -> float:
    return (time.monotonic() - start_time) * 1000


def _skipped(test_file: ResolvedTestFile) -> SuiteTestResult:
    return SuiteTestResult(
        name=test_file.path.name,
        file=str(test_file.path),
        status=TestStatus.SKIPPED,
        error=FAIL_FAST_SKIP_MESSAGE,
    )


class SuiteRunner:
    """Executes suite files, recursing into nested suites."""

    def __init__(
        self,
        parser: SpecParser | None = None,
        registry: RunnerRegistry | None = None,
        runner_options: RunnerOptions | None = None,
        test_executor: TestExecutor | None = None,
    ):
        """Initialize the suite runner.

        Args:
            parser: Parser for suite and spec files (default: YAML)
            registry: Runner registry for tests and hook requests
            runner_options: Options forwarded to protocol runners
            test_executor: Coroutine executing one test case; defaults to the
                runner pipeline
        """
        self.parser = parser or YamlSpecParser()
        self.registry = registry
        self.runner_options = runner_options
        self.test_executor = test_executor or self._execute_test_case

    async def _execute_test_case(
        self, test_case: TestCase, runner_options: RunnerOptions | None
    ) -> TestResult:
        return await execute_test_case(test_case, runner_options, self.registry)

    def run(self, path: str | Path, options: SuiteRunnerOptions | None = None) -> SuiteResult:
        """Synchronous wrapper around ``execute_suite``."""
        return asyncio.run(self.execute_suite(path, options))

    async def execute_suite(
        self, path: str | Path, options: SuiteRunnerOptions | None = None
    ) -> SuiteResult:
        """Execute a suite file and everything it references.

        Never raises for failing tests, failing hooks or invalid files; all of
        these are reported in the returned result.

        Args:
            path: Path to the ``.tsuite`` file
            options: Invocation options

        Returns:
            SuiteResult with aggregated statistics and nested suite results
        """
        options = options or SuiteRunnerOptions()
        suite_path = Path(path).resolve()
        base_dir = Path(options.cwd).resolve() if options.cwd else suite_path.parent
        start_time = time.monotonic()

        try:
            suite = self.parser.parse_suite_file(suite_path)
        except Exception as e:
            logger.warning(f"Cannot load suite {suite_path}: {e}")
            return SuiteResult(
                name=suite_path.name,
                status=SuiteStatus.ERROR,
                duration=_elapsed_ms(start_time),
                error=str(e),
                file=str(suite_path),
            )

        if options.on_suite_start:
            options.on_suite_start(suite.name)
        logger.info(f"Running suite '{suite.name}' ({suite_path})")

        context = LifecycleContext(
            variables={**suite.variables, **options.params, **options.env},
            extracted_vars=dict(options.extracted),
            environment=suite.environment,
        )
        hooks = LifecycleExecutor(
            self.registry, self.runner_options, silent=options.silent, cwd=base_dir
        )
        run = _SuiteExecution(
            suite=suite,
            path=suite_path,
            base_dir=base_dir,
            options=options,
            context=context,
            hooks=hooks,
        )

        setup = None
        if suite.lifecycle and suite.lifecycle.setup:
            setup = await hooks.execute_actions(suite.lifecycle.setup, context)
            if setup.failed:
                logger.warning(f"Setup of suite '{suite.name}' failed: {setup.error}")
                result = SuiteResult(
                    name=suite.name,
                    status=SuiteStatus.ERROR,
                    duration=_elapsed_ms(start_time),
                    setup=setup,
                    suites=[],
                    error=f"setup failed: {setup.error}",
                    file=str(suite_path),
                )
                if options.on_suite_complete:
                    options.on_suite_complete(suite.name, result)
                return result

        test_files = resolve_test_files(suite.tests, base_dir)
        if suite.execution.parallel_tests:
            await self._execute_parallel(run, test_files)
        else:
            await self._execute_sequential(run, test_files)

        nested = await self._execute_nested_suites(run)

        teardown = None
        if suite.lifecycle and suite.lifecycle.teardown:
            teardown = await hooks.execute_actions(suite.lifecycle.teardown, context)

        result = SuiteResult(
            name=suite.name,
            status=SuiteResult.derive_status(run.stats),
            duration=_elapsed_ms(start_time),
            stats=run.stats,
            setup=setup,
            teardown=teardown,
            tests=run.tests,
            suites=nested or None,
            file=str(suite_path),
        )
        logger.info(f"Suite '{suite.name}' {result.status.value}: {result.stats}")
        if options.on_suite_complete:
            options.on_suite_complete(suite.name, result)
        return result

    def _record(self, run: _SuiteExecution, result: SuiteTestResult) -> None:
        run.tests.append(result)
        run.stats.record(result.status)

    async def _execute_sequential(
        self, run: _SuiteExecution, test_files: list[ResolvedTestFile]
    ) -> None:
        for test_file in test_files:
            if run.stopped:
                self._record(run, _skipped(test_file))
                continue

            result = await self._execute_notified(run, test_file, run.context)
            self._record(run, result)
            if run.fail_fast and result.is_failure:
                logger.info(f"Fail-fast triggered by {test_file.path}")
                run.stopped = True

    async def _execute_parallel(
        self, run: _SuiteExecution, test_files: list[ResolvedTestFile]
    ) -> None:
        """Run test files through a bounded pool, one cloned context per file.

        Under fail-fast, the first failure stops workers from taking new files;
        files already running are not interrupted. Files never started are
        recorded as skipped.
        """
        queue: asyncio.Queue[ResolvedTestFile] = asyncio.Queue()
        for test_file in test_files:
            queue.put_nowait(test_file)
        stop = asyncio.Event()

        async def worker() -> None:
            while not stop.is_set():
                try:
                    test_file = queue.get_nowait()
                except asyncio.QueueEmpty:
                    return
                result = await self._execute_notified(run, test_file, run.context.clone())
                self._record(run, result)
                if run.fail_fast and result.is_failure:
                    stop.set()

        worker_count = min(run.suite.execution.concurrency, len(test_files))
        await asyncio.gather(*(worker() for _ in range(worker_count)))

        while not queue.empty():
            self._record(run, _skipped(queue.get_nowait()))
        run.stopped = stop.is_set()

    async def _execute_notified(
        self, run: _SuiteExecution, test_file: ResolvedTestFile, context: LifecycleContext
    ) -> SuiteTestResult:
        file_path = str(test_file.path)
        if run.options.on_test_start:
            run.options.on_test_start(file_path)
        result = await self._execute_test_file(run, test_file, context)
        if run.options.on_test_complete:
            run.options.on_test_complete(file_path, result)
        return result

    async def _execute_test_file(
        self, run: _SuiteExecution, test_file: ResolvedTestFile, context: LifecycleContext
    ) -> SuiteTestResult:
        """Run one test file: before_each, its test cases in order, after_each per case.

        The first failing test case ends the file. Any error raised while
        parsing or executing marks the file as ``error``.
        """
        start_time = time.monotonic()
        file_path = str(test_file.path)
        file_name = test_file.path.name
        suite = run.suite

        try:
            if suite.before_each:
                before = await run.hooks.execute_actions(suite.before_each, context)
                if before.failed:
                    return SuiteTestResult(
                        name=file_name,
                        file=file_path,
                        status=TestStatus.ERROR,
                        duration=_elapsed_ms(start_time),
                        error=f"before_each failed: {before.error}",
                    )

            test_cases = self.parser.parse_test_cases(
                test_file.path,
                env=run.options.env,
                params={**context.merged_variables(), **test_file.variables},
                extracted=dict(context.extracted_vars),
            )

            assertions = []
            hook_errors: list[str] = []
            for test_case in test_cases:
                test_case = self._with_suite_environment(test_case, context.environment)
                result = await self.test_executor(test_case, self.runner_options)
                assertions.extend(result.assertions)
                context.extracted_vars.update(result.extracted)

                if suite.after_each:
                    context.response = result.response
                    after = await run.hooks.execute_actions(suite.after_each, context)
                    if after.failed:
                        hook_errors.append(f"after_each failed: {after.error}")

                if not result.passed:
                    failure = result.first_failure
                    return SuiteTestResult(
                        name=test_case.description or file_name,
                        file=file_path,
                        status=TestStatus.FAILED,
                        duration=_elapsed_ms(start_time),
                        error=(failure.message if failure else "") or "Assertion failed",
                        assertions=assertions,
                        hook_errors=hook_errors,
                    )

            return SuiteTestResult(
                name=(test_cases[0].description if test_cases else "") or file_name,
                file=file_path,
                status=TestStatus.PASSED,
                duration=_elapsed_ms(start_time),
                assertions=assertions,
                hook_errors=hook_errors,
            )
        except Exception as e:
            logger.warning(f"Error executing {file_path}: {e}")
            return SuiteTestResult(
                name=file_name,
                file=file_path,
                status=TestStatus.ERROR,
                duration=_elapsed_ms(start_time),
                error=str(e),
            )

    @staticmethod
    def _with_suite_environment(
        test_case: TestCase, environment: EnvironmentConfig | None
    ) -> TestCase:
        """Point HTTP test cases without their own target at the suite environment."""
        if (
            environment is None
            or test_case.protocol != "http"
            or test_case.environment is not None
            or test_case.request is None
            or test_case.request.get("base_url")
        ):
            return test_case
        return replace(
            test_case, request={**test_case.request, "base_url": environment.base_url()}
        )

    async def _execute_nested_suites(self, run: _SuiteExecution) -> list[SuiteResult]:
        """Run nested suites in declaration order and merge their statistics."""
        nested: list[SuiteResult] = []
        for reference in run.suite.suites:
            if reference.skip:
                continue
            if run.stopped:
                break

            nested_path = (run.base_dir / reference.file).resolve()
            nested_options = replace(
                run.options,
                params=run.context.merged_variables(),
                extracted=dict(run.context.extracted_vars),
                cwd=nested_path.parent,
            )
            nested_result = await self.execute_suite(nested_path, nested_options)
            nested.append(nested_result)
            run.stats.merge(nested_result.stats)

            if run.fail_fast and nested_result.status in (SuiteStatus.FAILED, SuiteStatus.ERROR):
                run.stopped = True
        return nested
