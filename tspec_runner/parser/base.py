# SPDX-License-Identifier: MPL-2.0
# Copyright (c) 2025 Daniel Schmidt

"""Parser interface used by the execution engine."""

from pathlib import Path
from typing import Any, Protocol

from tspec_runner.core.models import SuiteDefinition, TestCase


class SpecParser(Protocol):
    """Turns spec and suite files into engine models.

    Implementations raise ``SpecificationError`` for invalid content. The
    engine records such failures per file instead of aborting the run.
    """

    def parse_test_cases(
        self,
        path: str | Path,
        env: dict[str, str] | None = None,
        params: dict[str, Any] | None = None,
        extracted: dict[str, Any] | None = None,
    ) -> list[TestCase]: ...

    def parse_suite_file(self, path: str | Path) -> SuiteDefinition: ...
