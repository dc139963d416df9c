# SPDX-License-Identifier: MPL-2.0
# Copyright (c) 2025 Daniel Schmidt

"""Global pytest fixtures shared across all test modules."""

import os
import re

import pytest


@pytest.fixture(scope="session", autouse=True)
def clear_tspec_environment() -> None:
    """Clear TSPEC_* variables so CLI option defaults are not overridden.

    Runs at session scope so that a developer's shell configuration never
    leaks into the tests.
    """
    pattern = re.compile(r"^TSPEC_[A-Z_]+$")
    keys_to_remove = [key for key in os.environ.keys() if pattern.match(key)]
    for key in keys_to_remove:
        del os.environ[key]
