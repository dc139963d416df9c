# SPDX-License-Identifier: MPL-2.0
# Copyright (c) 2025 Daniel Schmidt

"""Tests for core result types: AssertionSummary, SuiteStats, SuiteResult.

Focus: derived counts, status derivation and serialization. Basic dataclass
attribute access is NOT tested as Python's dataclass handles it automatically.
"""

import pytest

from tspec_runner.core.models import TestCase
from tspec_runner.core.types import (
    AssertionResult,
    AssertionSummary,
    HookResult,
    HookStatus,
    ScheduleResult,
    SuiteResult,
    SuiteStats,
    SuiteStatus,
    SuiteTestResult,
    TestResult,
    TestStatus,
)


class TestAssertionSummary:
    """Tests for AssertionSummary counts and pass rate."""

    def test_from_flags_counts(self) -> None:
        summary = AssertionSummary.from_flags([True, False, True, True])

        assert summary.total == 4
        assert summary.passed == 3
        assert summary.failed == 1
        assert summary.total == summary.passed + summary.failed

    def test_pass_rate(self) -> None:
        summary = AssertionSummary.from_flags([True, False, True, True])

        assert summary.pass_rate == pytest.approx(75.0)

    def test_pass_rate_zero_when_empty(self) -> None:
        """An empty summary reports 0.0 instead of dividing by zero."""
        assert AssertionSummary.from_flags([]).pass_rate == 0.0

    def test_str(self) -> None:
        assert str(AssertionSummary(total=3, passed=2, failed=1)) == "3/2/1"


class TestTestResult:
    """Tests for TestResult helpers."""

    def test_from_error_synthesizes_execution_error(self) -> None:
        test_case = TestCase(id="login_0", protocol="http")

        result = TestResult.from_error(test_case, RuntimeError("connection pool closed"))

        assert result.test_case_id == "login_0"
        assert result.passed is False
        assert len(result.assertions) == 1
        assert result.assertions[0].type == "execution_error"
        assert result.assertions[0].message == "Execution failed: connection pool closed"
        assert result.summary.failed == 1

    def test_first_failure(self) -> None:
        result = TestResult(
            test_case_id="t",
            passed=False,
            assertions=[
                AssertionResult(passed=True, type="json_path"),
                AssertionResult(passed=False, type="number", message="too small"),
                AssertionResult(passed=False, type="string", message="mismatch"),
            ],
        )

        assert result.first_failure is not None
        assert result.first_failure.message == "too small"

    def test_first_failure_none_when_all_passed(self) -> None:
        result = TestResult(
            test_case_id="t",
            passed=True,
            assertions=[AssertionResult(passed=True, type="json_path")],
        )

        assert result.first_failure is None


class TestScheduleResult:
    """Tests for ScheduleResult aggregation."""

    def test_from_results_summarizes(self) -> None:
        results = [
            TestResult(test_case_id="a", passed=True),
            TestResult(test_case_id="b", passed=False),
        ]

        schedule = ScheduleResult.from_results(results, duration=12.5)

        assert schedule.summary.total == 2
        assert schedule.summary.passed == 1
        assert schedule.duration == 12.5
        assert [r["test_case_id"] for r in schedule.to_dict()["results"]] == ["a", "b"]


class TestSuiteStats:
    """Tests for SuiteStats recording and merging."""

    def test_total_is_sum_of_parts(self) -> None:
        stats = SuiteStats()
        for status in (
            TestStatus.PASSED,
            TestStatus.PASSED,
            TestStatus.FAILED,
            TestStatus.SKIPPED,
            TestStatus.ERROR,
        ):
            stats.record(status)

        assert stats.total == 5
        assert stats.total == stats.passed + stats.failed + stats.skipped + stats.error

    def test_merge_adds_element_wise(self) -> None:
        parent = SuiteStats(passed=1, failed=1)
        parent.merge(SuiteStats(passed=2, skipped=1, error=1))

        assert parent.to_dict() == {
            "total": 6,
            "passed": 3,
            "failed": 1,
            "skipped": 1,
            "error": 1,
        }


class TestSuiteResultDeriveStatus:
    """Tests for SuiteResult.derive_status() priority."""

    @pytest.mark.parametrize(
        "stats,expected",
        [
            (SuiteStats(passed=1, failed=1, error=1), SuiteStatus.ERROR),
            (SuiteStats(passed=1, failed=1), SuiteStatus.FAILED),
            (SuiteStats(skipped=2), SuiteStatus.SKIPPED),
            (SuiteStats(), SuiteStatus.SKIPPED),
            (SuiteStats(passed=2, skipped=1), SuiteStatus.PASSED),
        ],
    )
    def test_priority(self, stats: SuiteStats, expected: SuiteStatus) -> None:
        assert SuiteResult.derive_status(stats) == expected


class TestSerialization:
    """Tests for to_dict() output used by the JSON reporter."""

    def test_assertion_result_omits_empty_fields(self) -> None:
        data = AssertionResult(passed=True, type="json_path", message="ok").to_dict()

        assert data == {"passed": True, "type": "json_path", "message": "ok"}

    def test_assertion_result_keeps_deprecation(self) -> None:
        data = AssertionResult(
            passed=True,
            type="status_code",
            deprecated=True,
            migration_hint='Use json_path with expression "$.status" instead',
        ).to_dict()

        assert data["deprecated"] is True
        assert "migration_hint" in data

    def test_suite_result_to_dict(self) -> None:
        result = SuiteResult(
            name="api",
            status=SuiteStatus.FAILED,
            stats=SuiteStats(passed=1, failed=1),
            setup=HookResult(status=HookStatus.PASSED, duration=1.0),
            tests=[
                SuiteTestResult(name="a", file="/x/a.tspec", status=TestStatus.PASSED),
                SuiteTestResult(
                    name="b",
                    file="/x/b.tspec",
                    status=TestStatus.FAILED,
                    error="boom",
                    hook_errors=["after_each failed: nope"],
                ),
            ],
        )

        data = result.to_dict()

        assert data["status"] == "failed"
        assert data["stats"]["total"] == 2
        assert data["setup"] == {"status": "passed", "duration": 1.0}
        assert "teardown" not in data
        assert "suites" not in data
        assert data["tests"][1]["error"] == "boom"
        assert data["tests"][1]["hook_errors"] == ["after_each failed: nope"]
