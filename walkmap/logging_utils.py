"""Logging utilities for the walkmap editing core.

Provides color-coded output to distinguish grid edits, archive I/O, and
recovered conditions such as a grid that had to be replaced on load.
"""

import os
from enum import Enum

from .config import Config


class Color(Enum):
    """ANSI color codes for terminal output."""

    # Colors for operation types
    BLUE = "\033[94m"      # Grid edits (click, brush, fill)
    YELLOW = "\033[93m"    # Recovered conditions (grid fallback)
    MAGENTA = "\033[95m"   # Archive and image I/O
    RED = "\033[91m"       # Errors
    GREEN = "\033[92m"     # Success/completion
    CYAN = "\033[96m"      # Info/metadata

    # Formatting
    BOLD = "\033[1m"
    RESET = "\033[0m"


# Markers for operation types (color-blind accessible)
LOG_TAG_EDIT = "[•]"      # Deterministic grid edit
LOG_TAG_IO = "[io]"       # Archive / image I/O
LOG_TAG_WARNING = "[~]"   # Recovered, load continues
LOG_TAG_ERROR = "[!]"     # Error
LOG_TAG_SUCCESS = "[✓]"   # Success
LOG_TAG_INFO = "[i]"      # Information


def colored(text: str, color: Color, bold: bool = False) -> str:
    """Wrap text in ANSI color codes if colors are enabled.

    Args:
        text: Text to colorize
        color: Color to apply
        bold: Whether to make text bold

    Returns:
        Colorized text if WALKMAP_NO_COLOR is not set, otherwise plain text
    """
    if os.getenv("WALKMAP_NO_COLOR"):
        return text

    prefix = color.value
    if bold:
        prefix = Color.BOLD.value + prefix

    return f"{prefix}{text}{Color.RESET.value}"


def log_edit(message: str) -> None:
    """Log a grid edit (blue). Silent unless Config.VERBOSE is set."""
    if Config.VERBOSE:
        print(colored(f"{LOG_TAG_EDIT} {message}", Color.BLUE))


def log_io(message: str) -> None:
    """Log an archive or image operation (magenta)."""
    print(colored(f"{LOG_TAG_IO} {message}", Color.MAGENTA))


def log_warning(message: str) -> None:
    """Log a recovered condition (yellow)."""
    print(colored(f"{LOG_TAG_WARNING} {message}", Color.YELLOW))


def log_error(message: str) -> None:
    """Log an error (red)."""
    print(colored(f"{LOG_TAG_ERROR} {message}", Color.RED))


def log_success(message: str) -> None:
    """Log a success (green)."""
    print(colored(f"{LOG_TAG_SUCCESS} {message}", Color.GREEN))


def log_info(message: str) -> None:
    """Log metadata/info (cyan)."""
    print(colored(f"{LOG_TAG_INFO} {message}", Color.CYAN))
