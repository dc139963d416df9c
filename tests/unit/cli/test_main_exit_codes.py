# SPDX-License-Identifier: MPL-2.0
# Copyright (c) 2025 Daniel Schmidt

"""Tests for main.py exit code handling."""

import json
from collections.abc import Callable
from pathlib import Path
from unittest.mock import AsyncMock, Mock, patch

import pytest
from typer.testing import CliRunner

import tspec_runner
from tspec_runner.cli.main import app
from tspec_runner.core.constants import (
    EXIT_ERROR,
    EXIT_FAILURE,
    EXIT_PARSE_ERROR,
    EXIT_SUCCESS,
)
from tspec_runner.core.models import RunnerOptions
from tspec_runner.core.types import (
    AssertionResult,
    AssertionSummary,
    HookResult,
    HookStatus,
    ScheduleResult,
    SuiteResult,
    SuiteStats,
    SuiteStatus,
    TestResult,
)
from tspec_runner.utils.terminal import terminal

Writer = Callable[[str, str], Path]

SPEC = """
http:
  method: GET
  path: /health
assertions:
  - type: json_path
    expression: $.status
    operator: equals
    expected: 200
"""


def schedule_result(*passed: bool) -> ScheduleResult:
    results = [
        TestResult(
            test_case_id=f"health_{index}",
            passed=flag,
            assertions=[AssertionResult(passed=flag, type="json_path", message="checked")],
            summary=AssertionSummary.from_flags([flag]),
        )
        for index, flag in enumerate(passed)
    ]
    return ScheduleResult.from_results(results, 12.0)


def mock_scheduler(mock_scheduler_cls: Mock, result: ScheduleResult) -> Mock:
    scheduler = Mock()
    scheduler.schedule = AsyncMock(return_value=result)
    mock_scheduler_cls.return_value = scheduler
    return scheduler


class TestRunCommand:
    """Tests for the flat ``run`` command."""

    def setup_method(self) -> None:
        self.runner = CliRunner()

    @patch("tspec_runner.cli.main.TestScheduler")
    def test_exit_code_0_all_passed(self, mock_scheduler_cls: Mock, write_file: Writer) -> None:
        path = write_file("health.tspec", SPEC)
        scheduler = mock_scheduler(mock_scheduler_cls, schedule_result(True, True))

        result = self.runner.invoke(app, ["run", str(path), "-c", "4", "--timeout", "2.5"])

        assert result.exit_code == EXIT_SUCCESS
        assert "Tests: 2 passed, 0 failed, 2 total (100.0%)" in terminal.strip_ansi(result.output)
        test_cases, concurrency, options = scheduler.schedule.call_args.args
        assert [tc.id for tc in test_cases] == ["health_0"]
        assert concurrency == 4
        assert options == RunnerOptions(timeout=2.5)

    @patch("tspec_runner.cli.main.TestScheduler")
    def test_exit_code_1_on_failure(self, mock_scheduler_cls: Mock, write_file: Writer) -> None:
        path = write_file("health.tspec", SPEC)
        mock_scheduler(mock_scheduler_cls, schedule_result(True, False))

        result = self.runner.invoke(app, ["run", str(path)])

        assert result.exit_code == EXIT_FAILURE
        assert "FAIL health_1" in terminal.strip_ansi(result.output)

    @patch("tspec_runner.cli.main.TestScheduler")
    def test_failure_wins_over_parse_errors(
        self, mock_scheduler_cls: Mock, write_file: Writer
    ) -> None:
        good = write_file("health.tspec", SPEC)
        broken = write_file("broken.tspec", "http: [1]\n")
        mock_scheduler(mock_scheduler_cls, schedule_result(False))

        result = self.runner.invoke(app, ["run", str(good), str(broken)])

        assert result.exit_code == EXIT_FAILURE

    def test_exit_code_2_parse_errors_only(self, write_file: Writer) -> None:
        path = write_file("broken.tspec", "http: {path: /\n")

        result = self.runner.invoke(app, ["run", str(path)])

        assert result.exit_code == EXIT_PARSE_ERROR
        assert "Parse error" in result.output

    @pytest.mark.parametrize(
        "field", ["variables: oops", "extract: oops", "metadata: [1, 2]"]
    )
    def test_exit_code_2_malformed_field(self, write_file: Writer, field: str) -> None:
        path = write_file("broken.tspec", f"http: {{path: /}}\n{field}\n")

        result = self.runner.invoke(app, ["run", str(path)])

        assert result.exit_code == EXIT_PARSE_ERROR
        assert "must be a mapping" in result.output

    @patch("tspec_runner.cli.main.TestScheduler")
    def test_exit_code_255_on_internal_error(
        self, mock_scheduler_cls: Mock, write_file: Writer
    ) -> None:
        path = write_file("health.tspec", SPEC)
        scheduler = Mock()
        scheduler.schedule = AsyncMock(side_effect=RuntimeError("event loop broke"))
        mock_scheduler_cls.return_value = scheduler

        result = self.runner.invoke(app, ["run", str(path)])

        assert result.exit_code == EXIT_ERROR

    @patch("tspec_runner.cli.main.TestScheduler")
    def test_directory_and_pairs(self, mock_scheduler_cls: Mock, write_file: Writer) -> None:
        write_file("specs/a.tspec", SPEC)
        write_file("specs/nested/b.tspec", SPEC)
        write_file("specs/notes.txt", "not a spec")
        directory = write_file("specs/c.tspec", SPEC).parent
        scheduler = mock_scheduler(mock_scheduler_cls, schedule_result(True))

        result = self.runner.invoke(
            app, ["run", str(directory), "-p", "user=alice", "-e", "region=eu"]
        )

        assert result.exit_code == EXIT_SUCCESS
        test_cases = scheduler.schedule.call_args.args[0]
        assert [tc.id for tc in test_cases] == ["a_0", "c_0", "b_0"]
        assert test_cases[0].variables == {"user": "alice"}
        assert test_cases[0].environment.variables == {"region": "eu"}

    def test_invalid_pair(self, write_file: Writer) -> None:
        path = write_file("health.tspec", SPEC)

        result = self.runner.invoke(app, ["run", str(path), "-p", "novalue"])

        assert result.exit_code != EXIT_SUCCESS
        assert "expected KEY=VALUE" in result.output

    @patch("tspec_runner.cli.main.TestScheduler")
    def test_json_output(self, mock_scheduler_cls: Mock, write_file: Writer) -> None:
        path = write_file("health.tspec", SPEC)
        mock_scheduler(mock_scheduler_cls, schedule_result(True))

        result = self.runner.invoke(app, ["run", str(path), "--json"])

        payload = json.loads(result.stdout)
        assert payload["summary"]["passed"] == 1
        assert payload["results"][0]["test_case_id"] == "health_0"
        assert payload["parse_errors"] == []


class TestSuiteCommand:
    """Tests for the ``suite`` command."""

    def setup_method(self) -> None:
        self.runner = CliRunner()

    def _invoke(self, mock_runner_cls: Mock, suite_result: SuiteResult, path: Path) -> Mock:
        runner = Mock()
        runner.execute_suite = AsyncMock(return_value=suite_result)
        mock_runner_cls.return_value = runner
        self.result = self.runner.invoke(app, ["suite", str(path), "-p", "tenant=acme"])
        return runner

    @patch("tspec_runner.cli.main.SuiteRunner")
    def test_exit_code_0_passed(self, mock_runner_cls: Mock, write_file: Writer) -> None:
        path = write_file("api.tsuite", "suite:\n  name: API\n")
        suite_result = SuiteResult(
            name="API", status=SuiteStatus.PASSED, stats=SuiteStats(passed=2)
        )

        runner = self._invoke(mock_runner_cls, suite_result, path)

        assert self.result.exit_code == EXIT_SUCCESS
        assert "API PASSED (2 passed" in terminal.strip_ansi(self.result.output)
        options = runner.execute_suite.call_args.args[1]
        assert options.params == {"tenant": "acme"}

    @patch("tspec_runner.cli.main.SuiteRunner")
    def test_exit_code_1_failed(self, mock_runner_cls: Mock, write_file: Writer) -> None:
        path = write_file("api.tsuite", "suite:\n  name: API\n")
        suite_result = SuiteResult(
            name="API", status=SuiteStatus.FAILED, stats=SuiteStats(passed=1, failed=1)
        )

        self._invoke(mock_runner_cls, suite_result, path)

        assert self.result.exit_code == EXIT_FAILURE

    @patch("tspec_runner.cli.main.SuiteRunner")
    def test_exit_code_1_setup_error(self, mock_runner_cls: Mock, write_file: Writer) -> None:
        path = write_file("api.tsuite", "suite:\n  name: API\n")
        suite_result = SuiteResult(
            name="API",
            status=SuiteStatus.ERROR,
            setup=HookResult(status=HookStatus.FAILED, error="boom"),
            error="setup failed: boom",
        )

        self._invoke(mock_runner_cls, suite_result, path)

        assert self.result.exit_code == EXIT_FAILURE

    @patch("tspec_runner.cli.main.SuiteRunner")
    def test_exit_code_2_unloadable_suite(self, mock_runner_cls: Mock, write_file: Writer) -> None:
        path = write_file("api.tsuite", "name: API\n")
        suite_result = SuiteResult(
            name="api.tsuite",
            status=SuiteStatus.ERROR,
            error="missing 'suite' root key",
        )

        self._invoke(mock_runner_cls, suite_result, path)

        assert self.result.exit_code == EXIT_PARSE_ERROR


class TestVersion:
    def test_version(self) -> None:
        result = CliRunner().invoke(app, ["--version"])

        assert result.exit_code == 0
        assert f"tspec-runner, version {tspec_runner.__version__}" in result.output
