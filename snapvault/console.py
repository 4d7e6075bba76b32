"""
Terminal output helpers.

Colored status lines for humans plus size formatting. Machine output
(--json) bypasses this module entirely.
"""

from __future__ import annotations

import sys

from .config import color_enabled


class Colors:
    """ANSI color codes for terminal output."""
    RED = "\033[91m"
    GREEN = "\033[92m"
    YELLOW = "\033[93m"
    BLUE = "\033[94m"
    MAGENTA = "\033[95m"
    CYAN = "\033[96m"
    GRAY = "\033[90m"
    RESET = "\033[0m"
    BOLD = "\033[1m"


def use_color() -> bool:
    return color_enabled() and sys.stdout.isatty()


def colored(text: str, color: str) -> str:
    """Return colored text for terminal output."""
    if not use_color():
        return text
    return f"{color}{text}{Colors.RESET}"


def print_error(msg: str) -> None:
    """Print error message to stderr."""
    print(colored(f"✗ Error: {msg}", Colors.RED), file=sys.stderr)


def print_success(msg: str) -> None:
    """Print success message."""
    print(colored(f"✓ {msg}", Colors.GREEN))


def print_warning(msg: str) -> None:
    """Print warning message to stderr."""
    print(colored(f"⚠ Warning: {msg}", Colors.YELLOW), file=sys.stderr)


def print_info(msg: str) -> None:
    """Print info message."""
    print(colored(f"ℹ {msg}", Colors.CYAN))


def format_size(size_bytes: int) -> str:
    """Human-readable size with one decimal, e.g. ``1.5 KB``."""
    units = ["B", "KB", "MB", "GB"]
    size = float(size_bytes)
    unit = 0
    while size >= 1024 and unit < len(units) - 1:
        size /= 1024
        unit += 1
    rounded = round(size, 1)
    if rounded == int(rounded):
        return f"{int(rounded)} {units[unit]}"
    return f"{rounded} {units[unit]}"
