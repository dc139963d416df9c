# SPDX-License-Identifier: MPL-2.0
# Copyright (c) 2025 Daniel Schmidt

"""Centralized terminal formatting utilities for tspec-runner."""

import os
import re

from colorama import Fore, Style, init

# autoreset=True means colors reset after each print
init(autoreset=True)


class TerminalColors:
    """Centralized color scheme for consistent terminal output."""

    ERROR = Fore.RED
    WARNING = Fore.YELLOW
    SUCCESS = Fore.GREEN
    INFO = Fore.CYAN
    HIGHLIGHT = Fore.MAGENTA
    RESET = Style.RESET_ALL

    BOLD = Style.BRIGHT
    DIM = Style.DIM

    # Check if colors should be disabled (for CI/CD environments)
    NO_COLOR = os.environ.get("NO_COLOR") is not None

    ANSI_ESCAPE_PATTERN = re.compile(r"\x1b\[[0-9;]*m")

    @classmethod
    def strip_ansi(cls, text: str) -> str:
        """Remove all ANSI escape sequences from text."""
        return cls.ANSI_ESCAPE_PATTERN.sub("", text)

    @classmethod
    def _paint(cls, color: str, text: str) -> str:
        if cls.NO_COLOR:
            return text
        return f"{color}{text}{cls.RESET}"

    @classmethod
    def error(cls, text: str) -> str:
        """Format error text in red."""
        return cls._paint(cls.ERROR, text)

    @classmethod
    def warning(cls, text: str) -> str:
        """Format warning text in yellow."""
        return cls._paint(cls.WARNING, text)

    @classmethod
    def success(cls, text: str) -> str:
        """Format success text in green."""
        return cls._paint(cls.SUCCESS, text)

    @classmethod
    def info(cls, text: str) -> str:
        """Format info text in cyan."""
        return cls._paint(cls.INFO, text)

    @classmethod
    def highlight(cls, text: str) -> str:
        """Format highlighted text in magenta."""
        return cls._paint(cls.HIGHLIGHT, text)

    @classmethod
    def bold(cls, text: str) -> str:
        """Format text in bold."""
        return cls._paint(cls.BOLD, text)

    @classmethod
    def status(cls, status: str) -> str:
        """Color a result status word (passed, failed, skipped, error)."""
        label = status.upper()
        if status == "passed":
            return cls.success(label)
        if status in ("failed", "error"):
            return cls.error(label)
        return cls.warning(label)

    @classmethod
    def header(cls, text: str, width: int = 70, char: str = "=") -> str:
        """Format a header with separators.

        Args:
            text: Header text to display
            width: Width of separator line
            char: Character to use for separator

        Returns:
            Formatted header string with separators
        """
        separator = char * width
        if cls.NO_COLOR:
            return f"{separator}\n{text}\n{separator}"
        return f"{cls.INFO}{separator}{cls.RESET}\n{cls.BOLD}{text}{cls.RESET}\n{cls.INFO}{separator}{cls.RESET}"


# Single instance for use across the codebase
terminal = TerminalColors()
