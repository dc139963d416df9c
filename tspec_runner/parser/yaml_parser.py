# SPDX-License-Identifier: MPL-2.0
# Copyright (c) 2025 Daniel Schmidt

"""YAML parser for ``.tspec`` and ``.tsuite`` files."""

import logging
from pathlib import Path
from typing import Any

import yaml

from tspec_runner.core.constants import SUPPORTED_PROTOCOLS, TEST_FILE_SUFFIX
from tspec_runner.core.errors import SpecificationError
from tspec_runner.core.models import (
    Assertion,
    EnvironmentConfig,
    LifecycleConfig,
    SuiteDefinition,
    TestCase,
)
from tspec_runner.runner.registry import RunnerRegistry

logger = logging.getLogger(__name__)


def _load_yaml(path: Path) -> Any:
    try:
        with open(path, encoding="utf-8") as f:
            return yaml.safe_load(f)
    except FileNotFoundError:
        raise SpecificationError("file not found", str(path)) from None
    except (OSError, yaml.YAMLError) as e:
        raise SpecificationError(f"cannot load YAML: {e}", str(path)) from e


def _mapping_field(entry: dict[str, Any], key: str) -> dict[str, Any]:
    value = entry.get(key) or {}
    if not isinstance(value, dict):
        raise SpecificationError(f"'{key}' must be a mapping")
    return value


def _case_prefix(path: Path) -> str:
    name = path.name
    if name.endswith(TEST_FILE_SUFFIX):
        name = name[: -len(TEST_FILE_SUFFIX)]
    return name


class YamlSpecParser:
    """Reads already-resolved YAML specifications.

    A ``.tspec`` file holds one mapping (one test case) or a list of mappings
    (one test case each). The protocol is the first protocol key present in
    the mapping (``http``, ``grpc``, ...), whose value is the request payload;
    otherwise it is taken from a ``name.<protocol>.tspec`` file name.

    Caller parameters and extracted values overlay the file's ``variables``;
    ``env`` overlays the environment variables. Placeholders are not expanded.
    """

    def parse_test_cases(
        self,
        path: str | Path,
        env: dict[str, str] | None = None,
        params: dict[str, Any] | None = None,
        extracted: dict[str, Any] | None = None,
    ) -> list[TestCase]:
        """Parse a spec file into test cases.

        Args:
            path: Path to the ``.tspec`` file
            env: Environment variable overrides
            params: Caller parameters
            extracted: Values extracted by earlier steps

        Returns:
            One TestCase per spec document entry

        Raises:
            SpecificationError: If the file is missing or malformed.
        """
        spec_path = Path(path)
        data = _load_yaml(spec_path)
        if data is None:
            raise SpecificationError("spec file is empty", str(spec_path))
        entries = data if isinstance(data, list) else [data]

        prefix = _case_prefix(spec_path)
        test_cases = []
        for index, entry in enumerate(entries):
            if not isinstance(entry, dict):
                raise SpecificationError(
                    f"test case #{index} must be a mapping", str(spec_path)
                )
            try:
                test_cases.append(
                    self._build_test_case(
                        entry,
                        f"{prefix}_{index}",
                        spec_path,
                        env or {},
                        {**(params or {}), **(extracted or {})},
                    )
                )
            except SpecificationError as e:
                if e.path is None:
                    raise SpecificationError(str(e), str(spec_path)) from e
                raise
            except (TypeError, ValueError) as e:
                raise SpecificationError(
                    f"test case #{index} is malformed: {e}", str(spec_path)
                ) from e
        logger.debug(f"Parsed {len(test_cases)} test case(s) from {spec_path}")
        return test_cases

    def _build_test_case(
        self,
        entry: dict[str, Any],
        case_id: str,
        spec_path: Path,
        env: dict[str, str],
        overrides: dict[str, Any],
    ) -> TestCase:
        protocol = next((p for p in SUPPORTED_PROTOCOLS if p in entry), None)
        request = entry.get(protocol) if protocol else None
        if protocol is None:
            protocol = RunnerRegistry.protocol_from_path(spec_path)
        if request is not None and not isinstance(request, dict):
            raise SpecificationError(f"'{protocol}' request must be a mapping")

        assertions = entry.get("assertions") or []
        if not isinstance(assertions, list):
            raise SpecificationError("'assertions' must be a list")

        environment = EnvironmentConfig.from_dict(entry.get("environment"))
        if env:
            base = environment or EnvironmentConfig()
            environment = EnvironmentConfig(
                scheme=base.scheme,
                host=base.host,
                port=base.port,
                variables={**base.variables, **env},
            )

        return TestCase(
            id=str(entry.get("id") or case_id),
            protocol=protocol,
            request=request,
            assertions=[Assertion.from_dict(a) for a in assertions],
            description=str(entry.get("description") or ""),
            extract=dict(_mapping_field(entry, "extract")),
            lifecycle=LifecycleConfig.from_dict(entry.get("lifecycle")),
            environment=environment,
            variables={**_mapping_field(entry, "variables"), **overrides},
            metadata=dict(_mapping_field(entry, "metadata")),
            source_file=str(spec_path),
        )

    def parse_suite_file(self, path: str | Path) -> SuiteDefinition:
        """Parse a ``.tsuite`` file.

        Raises:
            SpecificationError: If the file is missing, malformed or has no
                ``suite`` root key.
        """
        suite_path = Path(path)
        data = _load_yaml(suite_path)
        if not isinstance(data, dict) or "suite" not in data:
            raise SpecificationError("missing 'suite' root key", str(suite_path))
        return SuiteDefinition.from_dict(data["suite"], str(suite_path))
