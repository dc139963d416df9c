# SPDX-License-Identifier: MPL-2.0
# Copyright (c) 2025 Daniel Schmidt

"""Assertion evaluation and value extraction."""

from tspec_runner.assertion.engine import (
    assert_results,
    get_assertion_summary,
    load_assertion_include,
    run_assertion,
    run_assertions,
)
from tspec_runner.assertion.extractors import (
    coerce_to_number,
    coerce_to_string,
    extract_json_path,
    extract_regex,
    extract_variables,
    extract_xml_path,
)
from tspec_runner.assertion.operators import compare_values

__all__ = [
    "assert_results",
    "coerce_to_number",
    "coerce_to_string",
    "compare_values",
    "extract_json_path",
    "extract_regex",
    "extract_variables",
    "extract_xml_path",
    "get_assertion_summary",
    "load_assertion_include",
    "run_assertion",
    "run_assertions",
]
