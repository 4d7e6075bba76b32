"""
Snapshot pipeline: decrypt -> extract -> operate -> cleanup.

Every read command (cat, cp, less, and the detail view of ls) runs inside
SnapshotPipeline.open. The scratch workspace is released whether the
operation succeeds, a tool fails, or the operation itself raises.

This module does NOT:
- resolve archive references
- format output for humans beyond the per-file header
"""

from __future__ import annotations

import shutil
import sys
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import BinaryIO, Iterator, List, Optional, TextIO, Tuple

from .adapters import Find, Toolbox, has_glob
from .catalog import ArchiveEntry
from .errors import NoMatches
from .pathspec import DEFAULT_PATTERN
from .settings import Settings
from .workspace import ScratchWorkspace


@dataclass(frozen=True)
class FileInfo:
    name: str
    size: int
    modified: str

    def to_dict(self):
        return {"name": self.name, "size": self.size, "date": self.modified}


def file_header(relpath: str) -> str:
    return f"\n==> {relpath} <==\n"


class OpenSnapshot:
    """An archive decrypted and extracted into a live workspace."""

    def __init__(self, entry: ArchiveEntry, workspace: ScratchWorkspace, find: Find):
        self.entry = entry
        self.workspace = workspace
        self.find = find

    @property
    def tree(self) -> Path:
        return self.workspace.tree

    def path_of(self, relpath: str) -> Path:
        return self.tree / relpath

    def match(self, pattern: str) -> List[str]:
        """
        Resolve ``pattern`` to relative paths of regular files.

        Glob patterns go through find; anything else is a literal path
        that must exist inside the extracted tree.
        """

        if has_glob(pattern):
            return self.find.files(self.tree, pattern)

        target = pattern[2:] if pattern.startswith("./") else pattern
        full = (self.tree / target).resolve()
        try:
            full.relative_to(self.tree.resolve())
        except ValueError:
            return []
        return [target] if full.is_file() else []


class SnapshotPipeline:
    def __init__(self, settings: Settings, tools: Toolbox):
        self.settings = settings
        self.tools = tools

    @contextmanager
    def open(self, entry: ArchiveEntry, label: str = "read") -> Iterator[OpenSnapshot]:
        with ScratchWorkspace(self.settings.scratch_root, label) as ws:
            self.tools.gpg.decrypt(entry.path, ws.container)
            ws.tree.mkdir()
            self.tools.tar.extract(ws.container, ws.tree)
            yield OpenSnapshot(entry, ws, self.tools.find)

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def cat(self, entry: ArchiveEntry, pattern: str, out: Optional[BinaryIO] = None) -> List[str]:
        """Write matched files to ``out`` (stdout by default)."""
        out = out or sys.stdout.buffer
        with self.open(entry, "cat") as snap:
            files = self._require_matches(snap, pattern)
            for rel in files:
                if len(files) > 1:
                    out.write(file_header(rel).encode("utf-8"))
                with snap.path_of(rel).open("rb") as fh:
                    shutil.copyfileobj(fh, out)
            out.flush()
        return files

    def copy(self, entry: ArchiveEntry, pattern: str, dest: str | Path) -> List[Tuple[str, Path]]:
        """
        Copy matched files into the directory ``dest`` (created if needed).

        Files land flat under ``dest`` by basename.
        """

        dest = Path(dest)
        copied = []
        with self.open(entry, "cp") as snap:
            files = self._require_matches(snap, pattern)
            dest.mkdir(parents=True, exist_ok=True)
            for rel in files:
                target = dest / Path(rel).name
                shutil.copy2(snap.path_of(rel), target)
                copied.append((rel, target))
        return copied

    def view(self, entry: ArchiveEntry, pattern: str, out: Optional[TextIO] = None) -> List[str]:
        """Page through matched files one at a time."""
        out = out or sys.stdout
        with self.open(entry, "less") as snap:
            files = self._require_matches(snap, pattern)
            for rel in files:
                if len(files) > 1:
                    out.write(file_header(rel))
                    out.flush()
                self.tools.pager.page(snap.path_of(rel))
        return files

    def inspect(self, entry: ArchiveEntry, pattern: str = DEFAULT_PATTERN) -> List[FileInfo]:
        """Size and modification time of matched files; empty archives list nothing."""
        with self.open(entry, "info") as snap:
            infos = []
            for rel in snap.match(pattern):
                st = snap.path_of(rel).stat()
                infos.append(
                    FileInfo(
                        name=rel,
                        size=st.st_size,
                        modified=datetime.fromtimestamp(st.st_mtime).strftime("%Y-%m-%d %H:%M"),
                    )
                )
        return infos

    @staticmethod
    def _require_matches(snap: OpenSnapshot, pattern: str) -> List[str]:
        files = snap.match(pattern)
        if not files:
            raise NoMatches(pattern)
        return files
