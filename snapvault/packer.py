"""
Snapshot creation and cleanup.

pack: create a new archive when the private directory changed since the
newest archive (or unconditionally with force) and stage it with git.
Committing is left to the user.

clean: delete untracked archives, keeping only the newest one.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from .adapters import Toolbox
from .builder import ArchiveBuilder
from .catalog import ArchiveCatalog, ArchiveEntry
from .changes import ChangeDetector
from .errors import NoChanges, StateError
from .settings import Settings


@dataclass(frozen=True)
class PackResult:
    archive: ArchiveEntry
    staged: str
    forced: bool = False
    changed: Optional[bool] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": "success",
            "archive": self.archive.to_dict(),
            "staged": self.staged,
            "forced": self.forced,
        }


@dataclass
class CleanResult:
    removed: List[str] = field(default_factory=list)
    kept: Optional[str] = None


class Packer:
    def __init__(
        self,
        settings: Settings,
        tools: Toolbox,
        catalog: ArchiveCatalog,
        detector: Optional[ChangeDetector] = None,
        builder: Optional[ArchiveBuilder] = None,
    ):
        self.settings = settings
        self.tools = tools
        self.catalog = catalog
        self.detector = detector or ChangeDetector(settings, tools)
        self.builder = builder or ArchiveBuilder(settings, tools)

    def pack(self, force: bool = False) -> PackResult:
        """
        Create and stage a new archive.

        Raises:
            StateError: if the private directory is empty
            NoChanges: if nothing changed since the newest archive and
                ``force`` is not set
        """

        self.settings.archive_dir.mkdir(parents=True, exist_ok=True)
        self.settings.private_dir.mkdir(parents=True, exist_ok=True)

        if not any(self.settings.private_dir.iterdir()):
            raise StateError("No files found in private directory")

        changed: Optional[bool] = None
        names = self.catalog.archive_names()
        if names and not force:
            newest = self.settings.archive_dir / names[0]
            latest = ArchiveEntry(name=names[0], path=newest, size=newest.stat().st_size)
            changed = self.detector.has_changes(latest, self.settings.private_dir)
            if not changed:
                raise NoChanges(
                    "No changes detected in private directory. Use --force to create archive anyway."
                )

        path = self.builder.build()
        staged = self.settings.relative(path)
        self.tools.git.add(staged)

        entry = ArchiveEntry(name=path.name, path=path, size=path.stat().st_size)
        return PackResult(archive=entry, staged=staged, forced=force, changed=changed)

    def clean(self) -> CleanResult:
        """Remove every untracked archive except the newest."""
        pattern = f"{self.settings.relative(self.settings.archive_dir)}/*{self.settings.suffix}"
        untracked = sorted(self.tools.git.untracked(pattern), key=lambda p: Path(p).name, reverse=True)

        result = CleanResult(kept=untracked[0] if untracked else None)
        for rel in untracked[1:]:
            (self.settings.root / rel).unlink()
            result.removed.append(rel)
        return result
