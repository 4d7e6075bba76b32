"""Shared fixtures: a project tree plus in-process stand-ins for gpg, tar, git, diff and find."""

from __future__ import annotations

import fnmatch
import io
import os
import shutil
import tarfile
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Dict, List, Optional

import pytest

from snapvault.adapters import CommitInfo, DiffResult, Provenance, Toolbox
from snapvault.builder import ArchiveBuilder
from snapvault.catalog import ArchiveCatalog
from snapvault.errors import DecryptionFailed, ToolFailure
from snapvault.settings import Settings
from snapvault.tools import ToolRunner


# ---------------------------------------------------------------------------
# Tool doubles
# ---------------------------------------------------------------------------


class FakeGpg:
    """Identity "encryption": the archive file is the tarball itself."""

    def __init__(self):
        self.decrypted: List[str] = []
        self.fail_on: set = set()

    def decrypt(self, src, dest):
        self.decrypted.append(Path(src).name)
        if Path(src).name in self.fail_on:
            raise DecryptionFailed(["gpg"], 2, "gpg: decryption failed: No secret key")
        shutil.copyfile(src, dest)

    def encrypt(self, src, dest):
        shutil.copyfile(src, dest)


def _extract_all(tf: tarfile.TarFile, target) -> None:
    if hasattr(tarfile, "data_filter"):
        tf.extractall(target, filter="data")
    else:
        tf.extractall(target)


class FakeTar:
    def __init__(self):
        self.fail_extract = False

    def extract(self, container, target):
        if self.fail_extract:
            raise ToolFailure(["tar", "-xf"], 2, "tar: Unexpected EOF in archive")
        try:
            with tarfile.open(container) as tf:
                _extract_all(tf, target)
        except tarfile.TarError as e:
            raise ToolFailure(["tar", "-xf"], 2, str(e))

    def check(self, container):
        try:
            with tarfile.open(container) as tf:
                return tf.getnames()
        except tarfile.TarError as e:
            raise ToolFailure(["tar", "-tf"], 2, f"tar: {e}")

    def create(self, source_dir, container):
        with tarfile.open(container, "w") as tf:
            tf.add(str(source_dir), arcname=".")


class FakeGit:
    def __init__(self):
        self.history: Dict[str, Provenance] = {}
        self.commits: Dict[str, CommitInfo] = {}
        self.staged: List[str] = []
        self.untracked_paths: List[str] = []
        self.broken = False

    def track(self, name: str, commit_hash: str, author="Ada <ada@example.com>", message="add archive"):
        self.history[name] = Provenance(commit_hash=commit_hash, author=author, message=message)
        self.commits[commit_hash] = CommitInfo(
            hash=commit_hash[:7], author=author, timestamp=1700000000, subject=message
        )

    def last_commit(self, path):
        if self.broken:
            raise ToolFailure(["git", "log"], message="executable not found: git")
        return self.history.get(Path(path).name)

    def show_commit(self, commit):
        for full, info in self.commits.items():
            if full.startswith(commit):
                return info
        raise ToolFailure(["git", "show", commit], 128, f"fatal: bad object {commit}")

    def add(self, path):
        self.staged.append(path)

    def untracked(self, pattern):
        return [p for p in self.untracked_paths if fnmatch.fnmatch(p, pattern)]


def _snapshot_tree(root: Path) -> Dict[str, Optional[bytes]]:
    tree: Dict[str, Optional[bytes]] = {}
    for dirpath, dirnames, filenames in os.walk(root):
        rel_dir = os.path.relpath(dirpath, root)
        for name in dirnames + filenames:
            full = os.path.join(dirpath, name)
            rel = os.path.normpath(os.path.join(rel_dir, name))
            if os.path.islink(full):
                tree[rel] = b"symlink:" + os.fsencode(os.readlink(full))
            elif os.path.isdir(full):
                tree[rel] = None
            else:
                tree[rel] = Path(full).read_bytes()
    return tree


class FakeDiff:
    def recursive(self, left, right):
        a = _snapshot_tree(Path(left))
        b = _snapshot_tree(Path(right))
        lines = []
        for rel in sorted(set(a) | set(b)):
            if rel not in b:
                lines.append(f"Only in {left}: {rel}")
            elif rel not in a:
                lines.append(f"Only in {right}: {rel}")
            elif a[rel] != b[rel]:
                lines.append(f"Files {left}/{rel} and {right}/{rel} differ")
        return DiffResult(returncode=1 if lines else 0, output="\n".join(lines))


class FakeFind:
    def files(self, root, pattern):
        matches = []
        for dirpath, _dirs, filenames in os.walk(root):
            for f in filenames:
                rel = os.path.relpath(os.path.join(dirpath, f), root).replace(os.sep, "/")
                target = rel if "/" in pattern else f
                if fnmatch.fnmatch(target, pattern):
                    matches.append(rel)
        return sorted(matches)


class FakePager:
    def __init__(self):
        self.paged: List[bytes] = []

    def page(self, path):
        self.paged.append(Path(path).read_bytes())


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def settings(tmp_path, monkeypatch):
    monkeypatch.delenv("SNAPVAULT_ARCHIVE_DIR", raising=False)
    monkeypatch.delenv("SNAPVAULT_PRIVATE_DIR", raising=False)
    monkeypatch.delenv("SNAPVAULT_RECIPIENT", raising=False)
    root = tmp_path / "project"
    root.mkdir()
    s = Settings.load(root)
    s.archive_dir.mkdir()
    s.private_dir.mkdir()
    return s


@pytest.fixture
def tools():
    return Toolbox(
        runner=ToolRunner(),
        gpg=FakeGpg(),
        tar=FakeTar(),
        git=FakeGit(),
        diff=FakeDiff(),
        find=FakeFind(),
        pager=FakePager(),
    )


@pytest.fixture
def catalog(settings, tools):
    return ArchiveCatalog(settings, tools.git)


@pytest.fixture
def builder(settings, tools):
    start = datetime(2030, 1, 1, tzinfo=timezone.utc)
    ticks = iter(range(10_000))
    return ArchiveBuilder(settings, tools, clock=lambda: start + timedelta(seconds=next(ticks)))


def write_archive(settings: Settings, name: str, files: Dict[str, bytes]) -> Path:
    """Write a plaintext tarball (what FakeGpg treats as encrypted) into the archive dir."""
    path = settings.archive_dir / name
    with tarfile.open(path, "w") as tf:
        for rel, data in files.items():
            info = tarfile.TarInfo(name=f"./{rel}")
            info.size = len(data)
            info.mtime = 1700000000
            tf.addfile(info, io.BytesIO(data))
    return path


def write_tree(root: Path, files: Dict[str, bytes]) -> None:
    for rel, data in files.items():
        target = root / rel
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(data)


def scratch_dirs(settings: Settings) -> List[str]:
    return [p.name for p in settings.scratch_root.iterdir() if p.name.startswith(".scratch-")]
