# SPDX-License-Identifier: MPL-2.0
# Copyright (c) 2025 Daniel Schmidt

"""Registry mapping protocol tags to runner factories."""

import logging
import re
from pathlib import Path

from tspec_runner.core.constants import SUPPORTED_PROTOCOLS, TEST_FILE_SUFFIX
from tspec_runner.core.errors import RunnerNotFoundError
from tspec_runner.core.models import RunnerOptions
from tspec_runner.runner.base import Runner, RunnerFactory
from tspec_runner.runner.http_runner import HttpRunner

logger = logging.getLogger(__name__)

_PROTOCOL_SUFFIX_PATTERN = re.compile(
    rf"\.({'|'.join(SUPPORTED_PROTOCOLS)}){re.escape(TEST_FILE_SUFFIX)}$",
    re.IGNORECASE,
)


class RunnerRegistry:
    """Creates runners by protocol tag."""

    def __init__(self) -> None:
        self._factories: dict[str, RunnerFactory] = {}

    def register(self, protocol: str, factory: RunnerFactory) -> None:
        """Register (or replace) the factory for ``protocol``."""
        if protocol in self._factories:
            logger.debug(f"Replacing runner registered for protocol: {protocol}")
        self._factories[protocol] = factory

    def has(self, protocol: str) -> bool:
        return protocol in self._factories

    def create(self, protocol: str, options: RunnerOptions | None = None) -> Runner:
        """Instantiate a runner.

        Raises:
            RunnerNotFoundError: If nothing is registered for ``protocol``.
        """
        factory = self._factories.get(protocol)
        if factory is None:
            raise RunnerNotFoundError(f"No runner registered for protocol: {protocol}")
        return factory(options or RunnerOptions())

    def registered_protocols(self) -> list[str]:
        return list(self._factories)

    @staticmethod
    def protocol_from_path(path: str | Path) -> str | None:
        """Infer the protocol from a ``name.<protocol>.tspec`` file name."""
        match = _PROTOCOL_SUFFIX_PATTERN.search(str(path))
        return match.group(1).lower() if match else None


# Process-wide default registry
default_registry = RunnerRegistry()
default_registry.register("http", HttpRunner)


def create_runner(
    protocol: str | None,
    options: RunnerOptions | None = None,
    registry: RunnerRegistry | None = None,
) -> Runner:
    """Create a runner for ``protocol`` from ``registry`` (default: the global one).

    Raises:
        RunnerNotFoundError: If ``protocol`` is empty or not registered.
    """
    if not protocol:
        raise RunnerNotFoundError("Protocol is required")
    return (registry or default_registry).create(protocol, options)
