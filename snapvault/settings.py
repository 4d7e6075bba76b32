"""
Settings loading, validation, and normalization.

This module answers one question:
    "Where does the project keep its archives, and which tools do we run?"

Responsibilities:
- Load the optional .snapvault.yml file from the project root
- Validate structure and version
- Apply environment overrides
- Resolve every directory to an absolute path, once, at startup

This module does NOT:
- Run external tools
- Touch archives or the private directory
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from .config import (
    ARCHIVE_SUFFIX,
    DEFAULT_ARCHIVE_DIR,
    DEFAULT_LIST_LIMIT,
    DEFAULT_PRIVATE_DIR,
    ENV_ARCHIVE_DIR,
    ENV_PRIVATE_DIR,
    SETTINGS_FILENAME,
    SUPPORTED_SETTINGS_VERSION,
    get_recipient,
)
from .errors import ConfigError


# ---------------------------------------------------------------------------
# Data models
# ---------------------------------------------------------------------------


@dataclass
class ToolPaths:
    gpg: str = "gpg"
    tar: str = "tar"
    git: str = "git"
    diff: str = "diff"
    find: str = "find"
    pager: str = field(default_factory=lambda: os.getenv("PAGER") or "less")
    timeout: Optional[float] = None


@dataclass
class EncryptionConfig:
    recipient: Optional[str] = None


@dataclass
class Settings:
    root: Path
    archive_dir: Path
    private_dir: Path
    scratch_dir: Optional[Path] = None
    suffix: str = ARCHIVE_SUFFIX
    list_limit: int = DEFAULT_LIST_LIMIT
    encryption: EncryptionConfig = field(default_factory=EncryptionConfig)
    tools: ToolPaths = field(default_factory=ToolPaths)
    builder: Optional[List[str]] = None

    @property
    def scratch_root(self) -> Path:
        """Parent directory for scratch workspaces."""
        return self.scratch_dir or self.archive_dir

    def relative(self, path: str | Path) -> str:
        """Render ``path`` relative to the project root (as git expects)."""
        return Path(os.path.relpath(Path(path), self.root)).as_posix()

    # ------------------------------------------------------------------
    # Loading API
    # ------------------------------------------------------------------

    @classmethod
    def load(
        cls,
        root: str | Path = ".",
        path: Optional[str | Path] = None,
    ) -> "Settings":
        """
        Build settings for a project directory.

        Args:
            root: Project root; archive and private dirs are resolved
                against it.
            path: Explicit settings file. When omitted, ``.snapvault.yml``
                in the root is used if present.

        Raises:
            ConfigError: if the settings file is invalid or missing when
                given explicitly

        Returns:
            Settings
        """

        root = Path(root).resolve()

        if path is not None:
            path = Path(path)
            if not path.exists():
                raise ConfigError(f"Settings file not found: {path}")
        else:
            path = root / SETTINGS_FILENAME

        raw: Dict[str, Any] = {}
        if path.exists():
            try:
                with path.open("r", encoding="utf-8") as fh:
                    raw = yaml.safe_load(fh) or {}
            except yaml.YAMLError as e:
                raise ConfigError(f"Invalid settings file {path}: {e}")

        return cls._from_dict(root, raw)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    @classmethod
    def _from_dict(cls, root: Path, data: Dict[str, Any]) -> "Settings":
        if not isinstance(data, dict):
            raise ConfigError("Settings file must contain a mapping")

        version = data.get("version", SUPPORTED_SETTINGS_VERSION)
        if version != SUPPORTED_SETTINGS_VERSION:
            raise ConfigError(f"Unsupported settings version: {version}")

        archive_dir = os.getenv(ENV_ARCHIVE_DIR) or data.get("archive_dir", DEFAULT_ARCHIVE_DIR)
        private_dir = os.getenv(ENV_PRIVATE_DIR) or data.get("private_dir", DEFAULT_PRIVATE_DIR)
        scratch_dir = data.get("scratch_dir")

        list_limit = data.get("list_limit", DEFAULT_LIST_LIMIT)
        if not isinstance(list_limit, int) or list_limit < 0:
            raise ConfigError(f"list_limit must be a non-negative integer, got {list_limit!r}")

        suffix = data.get("suffix", ARCHIVE_SUFFIX)
        if not isinstance(suffix, str) or not suffix:
            raise ConfigError("suffix must be a non-empty string")

        return cls(
            root=root,
            archive_dir=cls._resolve_dir(root, archive_dir),
            private_dir=cls._resolve_dir(root, private_dir),
            scratch_dir=cls._resolve_dir(root, scratch_dir) if scratch_dir else None,
            suffix=suffix,
            list_limit=list_limit,
            encryption=cls._parse_encryption(data.get("encryption") or {}),
            tools=cls._parse_tools(data.get("tools") or {}),
            builder=cls._parse_builder(data.get("builder")),
        )

    @staticmethod
    def _resolve_dir(root: Path, value: Any) -> Path:
        if not isinstance(value, (str, os.PathLike)):
            raise ConfigError(f"Expected a directory path, got {value!r}")
        path = Path(value).expanduser()
        if not path.is_absolute():
            path = root / path
        return path

    @staticmethod
    def _parse_encryption(data: Dict[str, Any]) -> EncryptionConfig:
        if not isinstance(data, dict):
            raise ConfigError("'encryption' must be a mapping")
        return EncryptionConfig(
            recipient=get_recipient() or data.get("recipient"),
        )

    @staticmethod
    def _parse_tools(data: Dict[str, Any]) -> ToolPaths:
        if not isinstance(data, dict):
            raise ConfigError("'tools' must be a mapping")

        tools = ToolPaths()
        for name in ("gpg", "tar", "git", "diff", "find", "pager"):
            if name in data:
                value = data[name]
                if not isinstance(value, str) or not value:
                    raise ConfigError(f"tools.{name} must be a non-empty string")
                setattr(tools, name, value)

        timeout = data.get("timeout")
        if timeout is not None:
            if not isinstance(timeout, (int, float)) or timeout <= 0:
                raise ConfigError("tools.timeout must be a positive number")
            tools.timeout = float(timeout)

        return tools

    @staticmethod
    def _parse_builder(value: Any) -> Optional[List[str]]:
        if value is None:
            return None
        if isinstance(value, str):
            value = value.split()
        if not isinstance(value, list) or not value or not all(isinstance(v, str) for v in value):
            raise ConfigError("'builder' must be a command string or a list of arguments")
        return list(value)
