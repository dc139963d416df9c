# SPDX-License-Identifier: MPL-2.0
# Copyright (c) 2025 Daniel Schmidt

"""Terminal formatting of scheduler and suite results."""

from tspec_runner.core.types import ScheduleResult, SuiteResult, TestResult
from tspec_runner.utils.terminal import terminal


def format_test_result(result: TestResult, verbose: bool = False) -> list[str]:
    """Format one test result, listing failed assertions (all when verbose)."""
    status = terminal.success("PASS") if result.passed else terminal.error("FAIL")
    lines = [f"{status} {result.test_case_id} ({result.duration:.0f}ms)"]
    if verbose or not result.passed:
        for assertion in result.assertions:
            if assertion.passed and not verbose:
                continue
            mark = terminal.success("ok") if assertion.passed else terminal.error("x")
            lines.append(f"  {mark} [{assertion.type}] {assertion.message}")
            if assertion.deprecated and assertion.migration_hint:
                lines.append(f"    {terminal.warning(assertion.migration_hint)}")
    return lines


def format_schedule_result(result: ScheduleResult, verbose: bool = False) -> str:
    lines: list[str] = []
    for test_result in result.results:
        lines.extend(format_test_result(test_result, verbose))
    summary = result.summary
    lines.append("")
    lines.append(
        terminal.bold(
            f"Tests: {summary.passed} passed, {summary.failed} failed, "
            f"{summary.total} total ({summary.pass_rate:.1f}%) in {result.duration:.0f}ms"
        )
    )
    return "\n".join(lines)


def format_suite_result(result: SuiteResult, indent: int = 0) -> str:
    """Format a suite result tree with per-file lines and nested suites."""
    pad = "  " * indent
    stats = result.stats
    lines = [
        f"{pad}{terminal.bold(result.name)} {terminal.status(result.status.value)} "
        f"({stats.passed} passed, {stats.failed} failed, {stats.skipped} skipped, "
        f"{stats.error} error, {result.duration:.0f}ms)"
    ]
    if result.error:
        lines.append(f"{pad}  {terminal.error(result.error)}")
    for hook_name, hook in (("setup", result.setup), ("teardown", result.teardown)):
        if hook is not None and hook.failed:
            lines.append(f"{pad}  {terminal.error(f'{hook_name} failed: {hook.error}')}")
    for test in result.tests:
        line = f"{pad}  {terminal.status(test.status.value)} {test.name}"
        if test.error:
            line += f" - {test.error}"
        lines.append(line)
        for hook_error in test.hook_errors:
            lines.append(f"{pad}    {terminal.warning(hook_error)}")
    for nested in result.suites or []:
        lines.append(format_suite_result(nested, indent + 1))
    return "\n".join(lines)
