"""
Global configuration and environment handling.

This module is responsible for:
- Defining global constants and defaults
- Loading secrets (gpg passphrase) and overrides from the environment

Nothing in this file should depend on:
- the filesystem
- the settings file structure
- external tools
- CLI arguments

If something here changes, the *entire tool* behavior changes.
"""

from __future__ import annotations

import os
from typing import Final, Optional

# ---------------------------------------------------------------------------
# Tool / format versioning
# ---------------------------------------------------------------------------

SUPPORTED_SETTINGS_VERSION: Final[int] = 1
TOOL_VERSION: Final[str] = "0.1.0"

# ---------------------------------------------------------------------------
# Default behavior
# ---------------------------------------------------------------------------

SETTINGS_FILENAME: Final[str] = ".snapvault.yml"
DEFAULT_ARCHIVE_DIR: Final[str] = ".archives"
DEFAULT_PRIVATE_DIR: Final[str] = "private"
ARCHIVE_SUFFIX: Final[str] = ".tar.gpg"

DEFAULT_LIST_LIMIT: Final[int] = 10
SHORT_HASH_LENGTH: Final[int] = 7

# Names inside a scratch workspace
CONTAINER_NAME: Final[str] = "container.tar"
TREE_NAME: Final[str] = "tree"

GLOB_CHARS: Final[str] = "*?["

# ---------------------------------------------------------------------------
# Environment variable names
# ---------------------------------------------------------------------------

ENV_PASSPHRASE: Final[str] = "SNAPVAULT_PASSPHRASE"
ENV_RECIPIENT: Final[str] = "SNAPVAULT_RECIPIENT"
ENV_ARCHIVE_DIR: Final[str] = "SNAPVAULT_ARCHIVE_DIR"
ENV_PRIVATE_DIR: Final[str] = "SNAPVAULT_PRIVATE_DIR"
ENV_NO_COLOR: Final[str] = "NO_COLOR"

# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def load_passphrase() -> Optional[str]:
    """
    Load the gpg passphrase from the environment.

    When unset, gpg falls back to its agent / pinentry for secrets.

    Returns:
        str or None
    """

    return os.getenv(ENV_PASSPHRASE) or None


def get_recipient() -> Optional[str]:
    """Return the gpg recipient override, if any."""
    return os.getenv(ENV_RECIPIENT) or None


def color_enabled() -> bool:
    """Colors are off when NO_COLOR is set."""
    return not os.getenv(ENV_NO_COLOR)
