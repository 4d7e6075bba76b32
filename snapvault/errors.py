"""
Error taxonomy.

Every failure the tool reports derives from VaultError, so the CLI can
print a message and exit 1 without a traceback.
"""

from __future__ import annotations

from typing import Optional, Sequence


class VaultError(Exception):
    """Base class for snapvault errors."""


class ConfigError(VaultError):
    pass


# Lookup failures
class NotFound(VaultError):
    pass


class NoMatches(NotFound):
    def __init__(self, pattern: str):
        super().__init__(f"No files matching: {pattern}")
        self.pattern = pattern


class InvalidPath(VaultError):
    pass


# External tools
class ToolFailure(VaultError):
    """An external executable exited non-zero (or could not be started)."""

    def __init__(
        self,
        command: Sequence[str],
        returncode: Optional[int] = None,
        stderr: str = "",
        message: Optional[str] = None,
    ):
        self.command = list(command)
        self.returncode = returncode
        self.stderr = stderr
        if message is None:
            detail = stderr.strip().splitlines()[-1] if stderr.strip() else ""
            message = f"{self.command[0]} failed with code {returncode}"
            if detail:
                message = f"{message}: {detail}"
        super().__init__(message)


class DecryptionFailed(ToolFailure):
    pass


class IntegrityFailure(VaultError):
    pass


# Project state
class StateError(VaultError):
    pass


class NoChanges(StateError):
    pass
