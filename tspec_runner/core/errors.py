# SPDX-License-Identifier: MPL-2.0
# Copyright (c) 2025 Daniel Schmidt

"""Exception hierarchy for the tspec-runner engine.

Only ``UnknownOperatorError`` is expected to escape assertion evaluation. All
other errors raised while running a test are recovered by the scheduler or
suite runner into failing results.
"""


class TSpecError(Exception):
    """Base class for all engine errors."""


class SpecificationError(TSpecError):
    """A test or suite specification is malformed or missing required fields."""

    def __init__(self, message: str, path: str | None = None):
        self.path = path
        super().__init__(f"{path}: {message}" if path else message)


class AssertionIncludeError(SpecificationError):
    """An assertion ``include`` reference could not be resolved."""


class UnknownOperatorError(TSpecError, ValueError):
    """A comparison operator is not recognised.

    This indicates a broken specification or an engine bug rather than a test
    failure, so it is raised instead of being folded into a failed result.
    """

    def __init__(self, operator: str):
        self.operator = operator
        super().__init__(f"Unknown operator: {operator}")


class RunnerNotFoundError(TSpecError):
    """No runner is registered for the requested protocol."""


class LifecycleActionError(TSpecError):
    """A lifecycle hook action failed."""
