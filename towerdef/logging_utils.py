"""Logging utilities for map loading.

Provides color-coded output so pipeline steps, failures and results are easy to
tell apart in a terminal.
"""

import os
from enum import Enum


class Color(Enum):
    """ANSI color codes for terminal output."""

    # Colors for operation types
    BLUE = "\033[94m"      # Pipeline steps (classify, build grid, enumerate)
    RED = "\033[91m"       # Errors
    GREEN = "\033[92m"     # Success/completion
    CYAN = "\033[96m"      # Info/metadata

    # Formatting
    BOLD = "\033[1m"
    RESET = "\033[0m"


_QUIET_LEVELS = {"WARNING", "ERROR", "CRITICAL"}


def colored(text: str, color: Color, bold: bool = False) -> str:
    """Wrap text in ANSI color codes if colors are enabled.

    Args:
        text: Text to colorize
        color: Color to apply
        bold: Whether to make text bold

    Returns:
        Colorized text if TOWERDEF_NO_COLOR is not set, otherwise plain text
    """
    if os.getenv("TOWERDEF_NO_COLOR"):
        return text

    prefix = color.value
    if bold:
        prefix = Color.BOLD.value + prefix

    return f"{prefix}{text}{Color.RESET.value}"


def _quiet() -> bool:
    return os.getenv("LOG_LEVEL", "INFO").upper() in _QUIET_LEVELS


def log_deterministic(message: str) -> None:
    """Log a pipeline step (blue)."""
    if not _quiet():
        print(colored(message, Color.BLUE))


def log_error(message: str) -> None:
    """Log an error (red). Never silenced."""
    print(colored(message, Color.RED))


def log_success(message: str) -> None:
    """Log a success (green)."""
    if not _quiet():
        print(colored(message, Color.GREEN))


def log_info(message: str) -> None:
    """Log metadata/info (cyan)."""
    if not _quiet():
        print(colored(message, Color.CYAN))


# Markers for operation types (color-blind accessible)
EMOJI_DETERMINISTIC = "[•]"  # Pipeline step
EMOJI_ERROR = "[!]"          # Error
EMOJI_SUCCESS = "[✓]"        # Success
EMOJI_INFO = "[i]"           # Information
