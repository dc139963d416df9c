# SPDX-License-Identifier: MPL-2.0
# Copyright (c) 2025 Daniel Schmidt

"""Mutable state shared by the hooks of one suite or test execution."""

import copy
from dataclasses import dataclass, field, replace
from typing import Any

from tspec_runner.core.models import EnvironmentConfig, Response


@dataclass
class LifecycleContext:
    """State threaded through lifecycle actions.

    A context is owned by exactly one execution. Parallel workers get their
    own copy via ``clone()``, so variables extracted in one worker are not
    visible to the others.

    Attributes:
        variables: Suite variables merged with caller parameters
        extracted_vars: Values extracted by hooks and scripts
        response: Most recent response seen by a hook or test
        environment: Active target environment
        output_config: Pending output configuration set by ``output`` actions
    """

    variables: dict[str, Any] = field(default_factory=dict)
    extracted_vars: dict[str, Any] = field(default_factory=dict)
    response: Response | None = None
    environment: EnvironmentConfig | None = None
    output_config: dict[str, Any] = field(default_factory=dict)

    def merged_variables(self) -> dict[str, Any]:
        """Variables overlaid with extracted values (extracted wins)."""
        return {**self.variables, **self.extracted_vars}

    def clone(self) -> "LifecycleContext":
        """Copy-on-fork snapshot for a parallel worker.

        Variables, extracted values and output config are deep-copied; the
        environment is immutable and shared.
        """
        return replace(
            self,
            variables=copy.deepcopy(self.variables),
            extracted_vars=copy.deepcopy(self.extracted_vars),
            output_config=copy.deepcopy(self.output_config),
        )
