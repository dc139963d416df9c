# SPDX-License-Identifier: MPL-2.0
# Copyright (c) 2025 Daniel Schmidt

"""Result types produced by the tspec-runner engine.

All durations are wall-clock milliseconds. Counts are always derived from
recorded outcomes so that ``total`` can never drift from its parts.
"""

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any

from tspec_runner.core.models import Response

if TYPE_CHECKING:
    from tspec_runner.core.models import TestCase


class TestStatus(str, Enum):
    """Outcome of one test file inside a suite."""

    PASSED = "passed"
    FAILED = "failed"
    SKIPPED = "skipped"
    ERROR = "error"


class SuiteStatus(str, Enum):
    """Overall outcome of a suite invocation."""

    PASSED = "passed"
    FAILED = "failed"
    SKIPPED = "skipped"
    ERROR = "error"
    BLOCKED = "blocked"


class HookStatus(str, Enum):
    """Outcome of one lifecycle hook list."""

    PASSED = "passed"
    FAILED = "failed"
    SKIPPED = "skipped"


def _without_none(data: dict[str, Any]) -> dict[str, Any]:
    return {key: value for key, value in data.items() if value is not None}


@dataclass
class AssertionResult:
    """Verdict of a single assertion.

    ``expected`` and ``actual`` are type-erased and echoed for reporting. The
    optional fields mirror the assertion kind that produced the result.
    """

    passed: bool
    type: str
    message: str = ""
    expected: Any = None
    actual: Any = None
    expression: str | None = None
    operator: str | None = None
    path: str | None = None
    name: str | None = None
    deprecated: bool = False
    migration_hint: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data = _without_none(asdict(self))
        if not self.deprecated:
            data.pop("deprecated", None)
        return data


@dataclass
class AssertionSummary:
    """Pass/fail counts over a list of verdicts."""

    total: int = 0
    passed: int = 0
    failed: int = 0

    @classmethod
    def from_flags(cls, flags: list[bool]) -> "AssertionSummary":
        passed = sum(1 for flag in flags if flag)
        return cls(total=len(flags), passed=passed, failed=len(flags) - passed)

    @property
    def pass_rate(self) -> float:
        """Percentage of passed items (0.0-100.0), 0.0 when empty."""
        if self.total > 0:
            return (self.passed / self.total) * 100
        return 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "total": self.total,
            "passed": self.passed,
            "failed": self.failed,
            "pass_rate": self.pass_rate,
        }

    def __str__(self) -> str:
        """Concise string representation: total/passed/failed."""
        return f"{self.total}/{self.passed}/{self.failed}"


@dataclass
class TestResult:
    """Scored outcome of one executed test case."""

    test_case_id: str
    passed: bool
    assertions: list[AssertionResult] = field(default_factory=list)
    summary: AssertionSummary = field(default_factory=AssertionSummary)
    extracted: dict[str, Any] = field(default_factory=dict)
    response: Response = field(default_factory=Response)
    duration: float = 0.0

    @classmethod
    def from_error(cls, test_case: "TestCase", error: BaseException) -> "TestResult":
        """Synthesize the failing result recorded when execution raises.

        Args:
            test_case: The test case whose execution failed
            error: The exception raised by the runner pipeline

        Returns:
            TestResult with a single ``execution_error`` assertion
        """
        return cls(
            test_case_id=test_case.id,
            passed=False,
            assertions=[
                AssertionResult(
                    passed=False,
                    type="execution_error",
                    message=f"Execution failed: {error}",
                )
            ],
            summary=AssertionSummary(total=1, passed=0, failed=1),
        )

    @property
    def first_failure(self) -> AssertionResult | None:
        return next((a for a in self.assertions if not a.passed), None)

    def to_dict(self) -> dict[str, Any]:
        return {
            "test_case_id": self.test_case_id,
            "passed": self.passed,
            "duration": self.duration,
            "summary": self.summary.to_dict(),
            "assertions": [a.to_dict() for a in self.assertions],
            "extracted": self.extracted,
        }


@dataclass
class ScheduleResult:
    """Outcome of a flat scheduler run.

    ``results`` are in completion order, which differs from submission order
    whenever more than one worker is active.
    """

    results: list[TestResult] = field(default_factory=list)
    duration: float = 0.0
    summary: AssertionSummary = field(default_factory=AssertionSummary)

    @classmethod
    def from_results(cls, results: list[TestResult], duration: float) -> "ScheduleResult":
        return cls(
            results=results,
            duration=duration,
            summary=AssertionSummary.from_flags([r.passed for r in results]),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "duration": self.duration,
            "summary": self.summary.to_dict(),
            "results": [r.to_dict() for r in self.results],
        }


@dataclass
class SuiteStats:
    """Per-suite outcome counts.

    ``total`` is computed, so ``total == passed + failed + skipped + error``
    holds for every instance.
    """

    passed: int = 0
    failed: int = 0
    skipped: int = 0
    error: int = 0

    @property
    def total(self) -> int:
        """Total number of test files accounted for."""
        return self.passed + self.failed + self.skipped + self.error

    def record(self, status: TestStatus) -> None:
        """Count one test file outcome."""
        if status == TestStatus.PASSED:
            self.passed += 1
        elif status == TestStatus.FAILED:
            self.failed += 1
        elif status == TestStatus.SKIPPED:
            self.skipped += 1
        else:
            self.error += 1

    def merge(self, other: "SuiteStats") -> None:
        """Add a nested suite's counts element-wise."""
        self.passed += other.passed
        self.failed += other.failed
        self.skipped += other.skipped
        self.error += other.error

    def to_dict(self) -> dict[str, int]:
        return {
            "total": self.total,
            "passed": self.passed,
            "failed": self.failed,
            "skipped": self.skipped,
            "error": self.error,
        }

    def __str__(self) -> str:
        """Concise string representation: total/passed/failed/skipped/error."""
        return f"{self.total}/{self.passed}/{self.failed}/{self.skipped}/{self.error}"


@dataclass
class HookResult:
    """Outcome of one lifecycle hook list."""

    status: HookStatus
    duration: float = 0.0
    error: str | None = None

    @property
    def failed(self) -> bool:
        return self.status == HookStatus.FAILED

    def to_dict(self) -> dict[str, Any]:
        return _without_none(asdict(self))


@dataclass
class SuiteTestResult:
    """Outcome of one test file inside a suite."""

    name: str
    file: str
    status: TestStatus
    duration: float = 0.0
    error: str | None = None
    assertions: list[AssertionResult] = field(default_factory=list)
    hook_errors: list[str] = field(default_factory=list)

    @property
    def is_failure(self) -> bool:
        """True for outcomes that trigger fail-fast."""
        return self.status in (TestStatus.FAILED, TestStatus.ERROR)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "name": self.name,
            "file": self.file,
            "status": self.status.value,
            "duration": self.duration,
        }
        if self.error is not None:
            data["error"] = self.error
        if self.assertions:
            data["assertions"] = [a.to_dict() for a in self.assertions]
        if self.hook_errors:
            data["hook_errors"] = list(self.hook_errors)
        return data


@dataclass
class SuiteResult:
    """Outcome of a suite invocation, including nested suites."""

    name: str
    status: SuiteStatus
    duration: float = 0.0
    stats: SuiteStats = field(default_factory=SuiteStats)
    setup: HookResult | None = None
    teardown: HookResult | None = None
    tests: list[SuiteTestResult] = field(default_factory=list)
    suites: list["SuiteResult"] | None = None
    error: str | None = None
    file: str | None = None

    @staticmethod
    def derive_status(stats: SuiteStats) -> SuiteStatus:
        """Derive the suite status from its aggregated counts."""
        if stats.error > 0:
            return SuiteStatus.ERROR
        if stats.failed > 0:
            return SuiteStatus.FAILED
        if stats.total == stats.skipped:
            return SuiteStatus.SKIPPED
        return SuiteStatus.PASSED

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "name": self.name,
            "status": self.status.value,
            "duration": self.duration,
            "stats": self.stats.to_dict(),
            "tests": [t.to_dict() for t in self.tests],
        }
        if self.file is not None:
            data["file"] = self.file
        if self.error is not None:
            data["error"] = self.error
        if self.setup is not None:
            data["setup"] = self.setup.to_dict()
        if self.teardown is not None:
            data["teardown"] = self.teardown.to_dict()
        if self.suites is not None:
            data["suites"] = [s.to_dict() for s in self.suites]
        return data
