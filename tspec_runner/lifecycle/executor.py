# SPDX-License-Identifier: MPL-2.0
# Copyright (c) 2025 Daniel Schmidt

"""Lifecycle hook executor.

Runs setup, teardown, before_each and after_each action lists strictly in
declaration order against a mutable ``LifecycleContext``.
"""

import asyncio
import json
import logging
import os
import time
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import Any

from tspec_runner.assertion.extractors import coerce_to_string, extract_variables
from tspec_runner.core.errors import LifecycleActionError
from tspec_runner.core.models import (
    ActionType,
    EnvironmentConfig,
    LifecycleAction,
    LifecycleScope,
    RunnerOptions,
    TestCase,
)
from tspec_runner.core.types import HookResult, HookStatus
from tspec_runner.lifecycle.context import LifecycleContext
from tspec_runner.runner.registry import RunnerRegistry, default_registry
from tspec_runner.utils.strings import parse_duration, substitute_variables

logger = logging.getLogger(__name__)

_LOG_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}

ActionHandler = Callable[[LifecycleAction, LifecycleContext], Awaitable[None]]


class LifecycleExecutor:
    """Executes lifecycle actions for suites and test cases."""

    def __init__(
        self,
        registry: RunnerRegistry | None = None,
        runner_options: RunnerOptions | None = None,
        silent: bool = False,
        cwd: str | Path | None = None,
    ):
        """Initialize the executor.

        Args:
            registry: Runner registry used by ``http`` and ``grpc`` actions
            runner_options: Options forwarded to runners created for actions
            silent: Suppress ``log`` action output
            cwd: Working directory for ``script`` actions
        """
        self.registry = registry or default_registry
        self.runner_options = runner_options or RunnerOptions()
        self.silent = silent
        self.cwd = str(cwd) if cwd is not None else None
        self._handlers: dict[ActionType, ActionHandler] = {
            ActionType.SCRIPT: self._run_script,
            ActionType.HTTP: self._run_request,
            ActionType.GRPC: self._run_request,
            ActionType.EXTRACT: self._run_extract,
            ActionType.WAIT: self._run_wait,
            ActionType.LOG: self._run_log,
            ActionType.OUTPUT: self._run_output,
        }

    async def execute_actions(
        self,
        actions: list[LifecycleAction],
        context: LifecycleContext,
        scope: LifecycleScope | None = None,
    ) -> HookResult:
        """Run a hook list and report its outcome.

        Actions run one at a time. The first action that raises stops the list
        and marks the hook as failed; nothing is propagated.

        Args:
            actions: Hook action list
            context: Context the actions read from and write to
            scope: When given, only actions declared with this scope run

        Returns:
            HookResult with status, elapsed milliseconds and error text
        """
        selected = [a for a in actions if scope is None or a.scope == scope]
        if not selected:
            return HookResult(status=HookStatus.PASSED, duration=0.0)

        start_time = time.monotonic()
        try:
            for action in selected:
                await self.execute_action(action, context)
        except Exception as e:
            duration = (time.monotonic() - start_time) * 1000
            logger.warning(f"Lifecycle hook failed: {e}")
            return HookResult(status=HookStatus.FAILED, duration=duration, error=str(e))

        duration = (time.monotonic() - start_time) * 1000
        return HookResult(status=HookStatus.PASSED, duration=duration)

    async def execute_action(self, action: LifecycleAction, context: LifecycleContext) -> None:
        """Run a single action.

        Raises:
            LifecycleActionError: If the action cannot be completed.
        """
        logger.debug(f"Executing lifecycle action: {action.action.value}")
        await self._handlers[action.action](action, context)

    async def _run_script(self, action: LifecycleAction, context: LifecycleContext) -> None:
        """Run ``source`` in a shell; a JSON object on stdout becomes extracted variables."""
        if not action.source:
            raise LifecycleActionError("Script action requires source field")

        script_env = {
            str(key): coerce_to_string(value)
            for key, value in context.merged_variables().items()
            if value is not None
        }
        try:
            process = await asyncio.create_subprocess_shell(
                action.source,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                env={**os.environ, **script_env},
                cwd=self.cwd,
            )
            stdout, stderr = await process.communicate()
        except OSError as e:
            raise LifecycleActionError(f"Script action failed: {e}") from e

        if process.returncode != 0:
            error_output = stderr.decode("utf-8", errors="replace").strip()
            raise LifecycleActionError(
                f"Script action failed with exit code {process.returncode}: {error_output}"
            )

        output = stdout.decode("utf-8", errors="replace").strip()
        if not output:
            return
        try:
            parsed = json.loads(output)
        except ValueError:
            logger.debug("Script output is not JSON, ignoring")
            return
        if isinstance(parsed, dict):
            context.extracted_vars.update(parsed)

    async def _run_request(self, action: LifecycleAction, context: LifecycleContext) -> None:
        """Execute an ``http``/``grpc`` request through the runner registry."""
        protocol = action.action.value
        environment = context.environment or EnvironmentConfig()
        request: dict[str, Any] = dict(action.request)
        if action.action == ActionType.HTTP:
            request = {"base_url": environment.base_url(), **request}

        test_case = TestCase(
            id=f"lifecycle_{protocol}",
            description=f"Lifecycle {protocol} action",
            protocol=protocol,
            request=request,
            environment=context.environment,
        )
        runner = self.registry.create(protocol, self.runner_options)
        response = await runner.execute(test_case)
        context.response = response

        if action.extract:
            context.extracted_vars.update(extract_variables(response, action.extract))

    async def _run_extract(self, action: LifecycleAction, context: LifecycleContext) -> None:
        variables = action.vars or action.extract
        if not variables:
            raise LifecycleActionError("Extract action requires vars field")
        if context.response is None:
            raise LifecycleActionError("Extract action requires response to be available")
        context.extracted_vars.update(extract_variables(context.response, variables))

    async def _run_wait(self, action: LifecycleAction, context: LifecycleContext) -> None:
        try:
            milliseconds = parse_duration(action.duration or "")
        except ValueError as e:
            raise LifecycleActionError(str(e)) from e
        await asyncio.sleep(milliseconds / 1000)

    async def _run_log(self, action: LifecycleAction, context: LifecycleContext) -> None:
        if self.silent:
            return
        message = substitute_variables(action.message or "", context.merged_variables())
        level = _LOG_LEVELS.get(action.level.lower(), logging.INFO)
        logger.log(level, f"[SUITE] {message}")

    async def _run_output(self, action: LifecycleAction, context: LifecycleContext) -> None:
        if not action.config:
            raise LifecycleActionError("Output action requires config field")
        # Later actions override earlier keys
        context.output_config = {**context.output_config, **action.config}
