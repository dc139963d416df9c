# SPDX-License-Identifier: MPL-2.0
# Copyright (c) 2025 Daniel Schmidt

"""Unit tests for LifecycleContext."""

from tspec_runner.core.models import EnvironmentConfig
from tspec_runner.lifecycle.context import LifecycleContext


class TestLifecycleContext:
    def test_extracted_values_override_variables(self) -> None:
        context = LifecycleContext(
            variables={"user": "alice", "env": "dev"}, extracted_vars={"user": "bob"}
        )

        assert context.merged_variables() == {"user": "bob", "env": "dev"}

    def test_clone_isolates_mutable_state(self) -> None:
        environment = EnvironmentConfig(host="api.test")
        context = LifecycleContext(
            variables={"ids": [1]},
            extracted_vars={"token": "a"},
            environment=environment,
            output_config={"format": "json"},
        )

        clone = context.clone()
        clone.variables["ids"].append(2)
        clone.extracted_vars["token"] = "b"
        clone.output_config["format"] = "junit"

        assert context.variables == {"ids": [1]}
        assert context.extracted_vars == {"token": "a"}
        assert context.output_config == {"format": "json"}
        assert clone.environment is environment
