# SPDX-License-Identifier: MPL-2.0
# Copyright (c) 2025 Daniel Schmidt

"""Lifecycle hook execution."""

from .context import LifecycleContext
from .executor import LifecycleExecutor

__all__ = [
    "LifecycleContext",
    "LifecycleExecutor",
]
