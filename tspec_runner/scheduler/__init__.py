# SPDX-License-Identifier: MPL-2.0
# Copyright (c) 2025 Daniel Schmidt

"""Bounded-concurrency scheduling of independent test cases."""

from .scheduler import TestExecutor, TestScheduler

__all__ = [
    "TestExecutor",
    "TestScheduler",
]
