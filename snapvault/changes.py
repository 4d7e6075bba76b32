"""
Change detection.

Decides whether the private directory differs from the newest snapshot,
so pack can skip creating a duplicate archive.
"""

from __future__ import annotations

from pathlib import Path

from .adapters import Toolbox
from .catalog import ArchiveEntry
from .settings import Settings
from .workspace import ScratchWorkspace


class ChangeDetector:
    def __init__(self, settings: Settings, tools: Toolbox):
        self.settings = settings
        self.tools = tools

    def has_changes(self, latest: ArchiveEntry, current_dir: str | Path) -> bool:
        """
        True if ``current_dir`` differs from the contents of ``latest``.

        Additions, deletions and content changes all count.
        """

        with ScratchWorkspace(self.settings.scratch_root, "compare") as ws:
            self.tools.gpg.decrypt(latest.path, ws.container)
            ws.tree.mkdir()
            self.tools.tar.extract(ws.container, ws.tree)
            result = self.tools.diff.recursive(ws.tree, current_dir)
        return result.changed
