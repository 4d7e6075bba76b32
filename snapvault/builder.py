"""
Archive creation.

Builds ``<archive_dir>/<UTC timestamp><suffix>`` from the private
directory: tar the directory contents, then gpg-encrypt the tarball. When
the settings name an external ``builder`` command it is run instead, from
the project root, and the archive it produced is picked up afterwards.
"""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
from typing import Callable

from .adapters import Toolbox
from .errors import StateError, ToolFailure
from .settings import Settings
from .workspace import ScratchWorkspace


TIMESTAMP_FORMAT = "%Y%m%d-%H%M%S-%f"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ArchiveBuilder:
    def __init__(
        self,
        settings: Settings,
        tools: Toolbox,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.settings = settings
        self.tools = tools
        self.clock = clock

    def next_name(self) -> str:
        """A fresh archive name that sorts after every existing one."""
        existing = sorted(
            p.name for p in self.settings.archive_dir.glob(f"*{self.settings.suffix}")
        )
        name = self.clock().strftime(TIMESTAMP_FORMAT) + self.settings.suffix
        if existing and name <= existing[-1]:
            raise StateError(
                f"New archive name {name} does not sort after {existing[-1]}; check the system clock"
            )
        return name

    def build(self) -> Path:
        """Create a new archive and return its path."""
        if self.settings.builder:
            return self._run_external()

        target = self.settings.archive_dir / self.next_name()
        with ScratchWorkspace(self.settings.scratch_root, "pack") as ws:
            self.tools.tar.create(self.settings.private_dir, ws.container)
            try:
                self.tools.gpg.encrypt(ws.container, target)
            except ToolFailure:
                if target.exists():
                    target.unlink()
                raise
        return target

    def _run_external(self) -> Path:
        before = set(self._names())
        command = self.settings.builder or []
        self.tools.runner.run(command[0], command[1:], cwd=self.settings.root, capture=False)

        created = sorted(set(self._names()) - before)
        if not created:
            raise StateError(f"Archive builder {command[0]} did not create a new archive")
        return self.settings.archive_dir / created[-1]

    def _names(self):
        return [p.name for p in self.settings.archive_dir.glob(f"*{self.settings.suffix}")]
