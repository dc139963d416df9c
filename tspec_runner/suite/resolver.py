# SPDX-License-Identifier: MPL-2.0
# Copyright (c) 2025 Daniel Schmidt

"""Resolution of suite test references into concrete files."""

import glob
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from tspec_runner.core.models import TestReference

logger = logging.getLogger(__name__)


@dataclass
class ResolvedTestFile:
    """A test file selected for execution and its per-reference variables."""

    path: Path
    variables: dict[str, Any] = field(default_factory=dict)


def _expand(reference: TestReference, base_dir: Path) -> list[Path]:
    if reference.file:
        return [(base_dir / reference.file).resolve()]
    matches = glob.glob(str(reference.files), root_dir=base_dir, recursive=True)
    if not matches:
        logger.warning(f"Pattern '{reference.files}' matched no files in {base_dir}")
    return [(base_dir / match).resolve() for match in sorted(matches)]


def resolve_test_files(
    tests: list[TestReference], base_dir: str | Path
) -> list[ResolvedTestFile]:
    """Turn test references into an ordered, de-duplicated file list.

    References marked ``skip`` are dropped. If any reference is marked
    ``only``, every other reference is dropped as well. Glob patterns support
    ``**`` and their matches are sorted. A file selected twice keeps its first
    position and the variables of the reference that selected it first.

    Args:
        tests: Test references from the suite definition
        base_dir: Directory that relative paths and patterns resolve against

    Returns:
        List of resolved test files in execution order
    """
    base = Path(base_dir)
    selected = [ref for ref in tests if not ref.skip]
    if any(ref.only for ref in selected):
        selected = [ref for ref in selected if ref.only]

    resolved: dict[Path, ResolvedTestFile] = {}
    for reference in selected:
        for path in _expand(reference, base):
            if path not in resolved:
                resolved[path] = ResolvedTestFile(path=path, variables=dict(reference.variables))
    return list(resolved.values())
