# SPDX-License-Identifier: MPL-2.0
# Copyright (c) 2025 Daniel Schmidt

"""Specification parsers consumed by the scheduler and suite runner."""

from .base import SpecParser
from .yaml_parser import YamlSpecParser

__all__ = [
    "SpecParser",
    "YamlSpecParser",
]
