"""
Archive catalog and reference resolution.

This module is responsible for:
- enumerating archive files in the archive directory, newest first
- attaching git provenance to each archive when it is tracked
- turning a user reference (latest, index, hash prefix) into one entry

The catalog is rebuilt on every call; nothing is cached between commands.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

from .adapters import Git, Provenance
from .console import print_warning
from .errors import NotFound, ToolFailure
from .settings import Settings


LATEST = "latest"
_INDEX_RE = re.compile(r"\d+")


@dataclass(frozen=True)
class ArchiveEntry:
    name: str
    path: Path
    size: int
    provenance: Optional[Provenance] = None

    @property
    def committed(self) -> bool:
        return self.provenance is not None

    def to_dict(self) -> Dict[str, Any]:
        git = None
        if self.provenance is not None:
            git = {
                "hash": self.provenance.short_hash,
                "commit": self.provenance.commit_hash,
                "author": self.provenance.author,
                "message": self.provenance.message,
            }
        return {"name": self.name, "size": self.size, "git": git}


class ArchiveCatalog:
    def __init__(self, settings: Settings, git: Git):
        self.settings = settings
        self.git = git

    def archive_names(self) -> List[str]:
        """
        Names of archive files, newest first.

        Raises:
            OSError: if the archive directory cannot be read
        """

        suffix = self.settings.suffix
        names = [
            p.name
            for p in self.settings.archive_dir.iterdir()
            if p.name.endswith(suffix) and p.is_file()
        ]
        return sorted(names, reverse=True)

    def list_archives(self) -> List[ArchiveEntry]:
        """
        Every archive on disk with its provenance, newest first.

        An unreadable archive directory yields an empty list and a warning.
        """

        try:
            names = self.archive_names()
        except FileNotFoundError:
            print_warning(f"Archive directory {self.settings.archive_dir} does not exist")
            return []
        except OSError as e:
            print_warning(f"Cannot read archive directory {self.settings.archive_dir}: {e}")
            return []

        entries = []
        for name in names:
            path = self.settings.archive_dir / name
            try:
                size = path.stat().st_size
            except OSError:
                # removed between listing and stat
                continue
            entries.append(
                ArchiveEntry(
                    name=name,
                    path=path,
                    size=size,
                    provenance=self._provenance(path),
                )
            )
        return entries

    def find(self, ref: str) -> ArchiveEntry:
        return resolve(ref, self.list_archives())

    def _provenance(self, path: Path) -> Optional[Provenance]:
        try:
            return self.git.last_commit(self.settings.relative(path))
        except ToolFailure:
            return None


# ---------------------------------------------------------------------------
# Reference resolution
# ---------------------------------------------------------------------------


def resolve(ref: str, catalog: Sequence[ArchiveEntry]) -> ArchiveEntry:
    """
    Resolve ``ref`` against a newest-first catalog.

    Order: ``latest``, then a zero-based index, then a commit-hash prefix.
    When several hashes share the prefix the newer archive wins.

    Raises:
        NotFound: when nothing matches
    """

    if not catalog:
        raise NotFound("No archives found")

    if ref == LATEST:
        return catalog[0]

    if _INDEX_RE.fullmatch(ref):
        index = int(ref)
        if index >= len(catalog):
            raise NotFound(f"Archive index {ref} not found")
        return catalog[index]

    for entry in catalog:
        if entry.provenance is not None and entry.provenance.commit_hash.startswith(ref):
            return entry

    raise NotFound(f"Archive with hash {ref} not found")


def latest_committed(catalog: Sequence[ArchiveEntry]) -> Optional[ArchiveEntry]:
    """Newest entry that is tracked by git, if any."""
    for entry in catalog:
        if entry.committed:
            return entry
    return None
