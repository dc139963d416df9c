# SPDX-License-Identifier: MPL-2.0
# Copyright (c) 2025 Daniel Schmidt

import asyncio
import json
import logging
from pathlib import Path

import errorhandler
import typer
from typing_extensions import Annotated

import tspec_runner
from tspec_runner.cli.output import format_schedule_result, format_suite_result
from tspec_runner.core.constants import (
    DEFAULT_CONCURRENCY,
    DEFAULT_HTTP_TIMEOUT,
    EXIT_ERROR,
    EXIT_FAILURE,
    EXIT_PARSE_ERROR,
    EXIT_SUCCESS,
    TEST_FILE_SUFFIX,
)
from tspec_runner.core.errors import SpecificationError
from tspec_runner.core.models import RunnerOptions, TestCase
from tspec_runner.core.types import SuiteStatus
from tspec_runner.parser.yaml_parser import YamlSpecParser
from tspec_runner.scheduler.scheduler import TestScheduler
from tspec_runner.suite.runner import SuiteRunner, SuiteRunnerOptions
from tspec_runner.utils.logging import VerbosityLevel, configure_logging
from tspec_runner.utils.terminal import terminal

app = typer.Typer(add_completion=False)

logger = logging.getLogger(__name__)

error_handler = errorhandler.ErrorHandler()


def version_callback(value: bool) -> None:
    if value:
        typer.echo(f"tspec-runner, version {tspec_runner.__version__}")
        raise typer.Exit()


Verbosity = Annotated[
    VerbosityLevel,
    typer.Option(
        "-v",
        "--verbosity",
        help="Verbosity level.",
        envvar="TSPEC_VERBOSITY",
        is_eager=True,
    ),
]


SpecFiles = Annotated[
    list[Path],
    typer.Argument(
        exists=True,
        dir_okay=True,
        file_okay=True,
        help="Spec files or directories containing .tspec files.",
    ),
]


SuiteFile = Annotated[
    Path,
    typer.Argument(
        exists=True,
        dir_okay=False,
        file_okay=True,
        help="Path to the .tsuite file.",
    ),
]


Concurrency = Annotated[
    int,
    typer.Option(
        "-c",
        "--concurrency",
        help="Maximum number of test cases executed in parallel.",
        envvar="TSPEC_CONCURRENCY",
        min=1,
    ),
]


Env = Annotated[
    list[str],
    typer.Option(
        "-e",
        "--env",
        help="Environment variable override (KEY=VALUE), repeatable.",
        envvar="TSPEC_ENV",
    ),
]


Param = Annotated[
    list[str],
    typer.Option(
        "-p",
        "--param",
        help="Parameter (KEY=VALUE), repeatable.",
        envvar="TSPEC_PARAM",
    ),
]


Timeout = Annotated[
    float,
    typer.Option(
        "--timeout",
        help="Per-request timeout in seconds.",
        envvar="TSPEC_TIMEOUT",
        min=0,
    ),
]


JsonOutput = Annotated[
    bool,
    typer.Option(
        "--json",
        help="Print results as JSON.",
        envvar="TSPEC_JSON",
    ),
]


Silent = Annotated[
    bool,
    typer.Option(
        "--silent",
        help="Suppress output of log hooks.",
        envvar="TSPEC_SILENT",
    ),
]


Version = Annotated[
    bool,
    typer.Option(
        "--version",
        callback=version_callback,
        help="Display version number.",
        is_eager=True,
    ),
]


@app.callback()
def callback(version: Version = False) -> None:
    """Execute TSpec protocol test cases and suites."""


def parse_pairs(values: list[str], option: str) -> dict[str, str]:
    """Parse repeated ``KEY=VALUE`` options into a mapping."""
    pairs: dict[str, str] = {}
    for value in values:
        key, separator, item = value.partition("=")
        if not separator or not key:
            raise typer.BadParameter(f"expected KEY=VALUE, got '{value}'", param_hint=option)
        pairs[key.strip()] = item
    return pairs


def collect_spec_files(paths: list[Path]) -> list[Path]:
    """Expand directories into the ``.tspec`` files below them."""
    files: list[Path] = []
    for path in paths:
        if path.is_dir():
            files.extend(sorted(path.rglob(f"*{TEST_FILE_SUFFIX}")))
        else:
            files.append(path)
    return files


@app.command()
def run(
    files: SpecFiles,
    concurrency: Concurrency = DEFAULT_CONCURRENCY,
    env: Env = [],
    param: Param = [],
    timeout: Timeout = DEFAULT_HTTP_TIMEOUT,
    json_output: JsonOutput = False,
    verbosity: Verbosity = VerbosityLevel.WARNING,
) -> None:
    """Run spec files as one flat batch."""
    configure_logging(verbosity, error_handler)
    env_vars = parse_pairs(env, "--env")
    params = parse_pairs(param, "--param")

    parser = YamlSpecParser()
    test_cases: list[TestCase] = []
    parse_errors: list[str] = []
    for spec_file in collect_spec_files(files):
        try:
            test_cases.extend(parser.parse_test_cases(spec_file, env=env_vars, params=params))
        except SpecificationError as e:
            parse_errors.append(str(e))

    for parse_error in parse_errors:
        typer.echo(terminal.error(f"Parse error: {parse_error}"), err=True)

    try:
        result = asyncio.run(
            TestScheduler().schedule(
                test_cases, concurrency, RunnerOptions(timeout=timeout)
            )
        )
    except Exception as e:
        logger.error(f"Execution failed: {e}")
        raise typer.Exit(EXIT_ERROR) from e

    if json_output:
        payload = result.to_dict()
        payload["parse_errors"] = parse_errors
        typer.echo(json.dumps(payload, indent=2, default=str))
    else:
        typer.echo(
            format_schedule_result(result, verbose=verbosity == VerbosityLevel.DEBUG)
        )

    if result.summary.failed > 0:
        exit(EXIT_FAILURE)
    if parse_errors:
        exit(EXIT_PARSE_ERROR)
    exit(EXIT_SUCCESS, produced_results=bool(result.results))


@app.command()
def suite(
    path: SuiteFile,
    env: Env = [],
    param: Param = [],
    timeout: Timeout = DEFAULT_HTTP_TIMEOUT,
    json_output: JsonOutput = False,
    silent: Silent = False,
    verbosity: Verbosity = VerbosityLevel.WARNING,
) -> None:
    """Run a suite file, including its nested suites."""
    configure_logging(verbosity, error_handler)
    options = SuiteRunnerOptions(
        params=parse_pairs(param, "--param"),
        env=parse_pairs(env, "--env"),
        silent=silent,
    )
    if not json_output:
        options.on_test_start = lambda file: logger.info(f"Running {file}")

    runner = SuiteRunner(runner_options=RunnerOptions(timeout=timeout))
    try:
        result = asyncio.run(runner.execute_suite(path, options))
    except Exception as e:
        logger.error(f"Execution failed: {e}")
        raise typer.Exit(EXIT_ERROR) from e

    if json_output:
        typer.echo(json.dumps(result.to_dict(), indent=2, default=str))
    else:
        typer.echo(format_suite_result(result))

    # A suite file that could not be loaded reports an error without hooks
    if result.error is not None and result.setup is None:
        exit(EXIT_PARSE_ERROR)
    if result.status in (SuiteStatus.FAILED, SuiteStatus.ERROR, SuiteStatus.BLOCKED):
        exit(EXIT_FAILURE)
    exit(EXIT_SUCCESS, produced_results=result.stats.total > 0)


def exit(code: int, produced_results: bool = True) -> None:
    if code == EXIT_SUCCESS and error_handler.fired and not produced_results:
        raise typer.Exit(EXIT_ERROR)
    raise typer.Exit(code)
