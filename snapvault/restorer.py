"""
Restore the private directory from a snapshot.

Destructive: the current private directory is replaced wholesale. Pack
first if its contents matter.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

from .adapters import Toolbox
from .catalog import ArchiveCatalog, ArchiveEntry, latest_committed
from .errors import NotFound, StateError
from .settings import Settings
from .workspace import ScratchWorkspace, remove_tree


@dataclass(frozen=True)
class RestoreResult:
    entry: ArchiveEntry
    restored_to: Path

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": "success",
            "archive": self.entry.to_dict(),
            "restored_to": str(self.restored_to),
        }


class Restorer:
    def __init__(self, settings: Settings, tools: Toolbox, catalog: ArchiveCatalog):
        self.settings = settings
        self.tools = tools
        self.catalog = catalog

    def default_entry(self) -> ArchiveEntry:
        """
        Newest committed archive. Untracked archives are only restored
        when named explicitly.
        """

        archives = self.catalog.list_archives()
        if not archives:
            raise NotFound("No archives found")
        entry = latest_committed(archives)
        if entry is None:
            raise StateError("No committed archives found")
        return entry

    def restore(self, entry: Optional[ArchiveEntry] = None) -> RestoreResult:
        if entry is None:
            entry = self.default_entry()

        target = self.settings.private_dir
        with ScratchWorkspace(self.settings.scratch_root, "restore") as ws:
            # decrypt before touching the private directory
            self.tools.gpg.decrypt(entry.path, ws.container)

            if target.exists():
                remove_tree(target)
            target.mkdir(parents=True)
            self.tools.tar.extract(ws.container, target)

        return RestoreResult(entry=entry, restored_to=target)
