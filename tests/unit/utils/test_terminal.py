# SPDX-License-Identifier: MPL-2.0
# Copyright (c) 2025 Daniel Schmidt

"""Unit tests for terminal formatting utilities."""

import pytest

from tspec_runner.utils.terminal import TerminalColors, terminal


class TestStatusColors:
    """Test status word coloring."""

    @pytest.mark.parametrize(
        "status,color",
        [
            ("passed", TerminalColors.SUCCESS),
            ("failed", TerminalColors.ERROR),
            ("error", TerminalColors.ERROR),
            ("skipped", TerminalColors.WARNING),
            ("blocked", TerminalColors.WARNING),
        ],
    )
    def test_status_color(
        self, status: str, color: str, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setattr(TerminalColors, "NO_COLOR", False)

        output = terminal.status(status)

        assert output == f"{color}{status.upper()}{TerminalColors.RESET}"

    def test_no_color_returns_plain_text(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(TerminalColors, "NO_COLOR", True)

        assert terminal.status("failed") == "FAILED"
        assert terminal.header("Suite", width=5) == "=====\nSuite\n====="


class TestStripAnsi:
    def test_strip_ansi(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(TerminalColors, "NO_COLOR", False)

        colored = terminal.error("boom") + " " + terminal.bold("done")

        assert colored != "boom done"
        assert terminal.strip_ansi(colored) == "boom done"
