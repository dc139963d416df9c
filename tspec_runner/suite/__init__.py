# SPDX-License-Identifier: MPL-2.0
# Copyright (c) 2025 Daniel Schmidt

"""Suite orchestration."""

from .resolver import ResolvedTestFile, resolve_test_files
from .runner import SuiteRunner, SuiteRunnerOptions

__all__ = [
    "ResolvedTestFile",
    "SuiteRunner",
    "SuiteRunnerOptions",
    "resolve_test_files",
]
