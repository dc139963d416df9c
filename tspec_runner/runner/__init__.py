# SPDX-License-Identifier: MPL-2.0
# Copyright (c) 2025 Daniel Schmidt

"""Protocol runners and the runner registry.

The single-test pipeline lives in ``tspec_runner.runner.pipeline``.
"""

from .base import Runner, RunnerFactory
from .http_runner import HttpRunner
from .registry import RunnerRegistry, create_runner, default_registry

__all__ = [
    "HttpRunner",
    "Runner",
    "RunnerFactory",
    "RunnerRegistry",
    "create_runner",
    "default_registry",
]
