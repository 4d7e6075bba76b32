"""
Scratch workspaces.

A workspace is a private temporary directory holding one decrypted
container and its extracted tree. It is removed on every exit path of the
``with`` block, including exceptions raised inside it.
"""

from __future__ import annotations

import os
import shutil
import stat
import sys
import tempfile
from pathlib import Path
from typing import Optional

from .config import CONTAINER_NAME, TREE_NAME
from .console import print_warning


def _retry_writable(func, path, _exc) -> None:
    # Extracted trees may contain read-only directories.
    try:
        os.chmod(os.path.dirname(path), stat.S_IRWXU)
        if os.path.isdir(path) and not os.path.islink(path):
            os.chmod(path, stat.S_IRWXU)
    except OSError:
        pass
    func(path)


def remove_tree(path: str | Path) -> None:
    """rmtree that also removes read-only entries."""
    if sys.version_info >= (3, 12):
        shutil.rmtree(path, onexc=_retry_writable)
    else:
        shutil.rmtree(path, onerror=_retry_writable)


class ScratchWorkspace:
    """
    Context manager for a uniquely named scratch directory.

    Usage:
        with ScratchWorkspace(parent, "cat") as ws:
            gpg.decrypt(archive, ws.container)
    """

    def __init__(self, parent: str | Path, label: str):
        self.parent = Path(parent)
        self.label = label
        self.path: Optional[Path] = None

    @property
    def container(self) -> Path:
        return self._require() / CONTAINER_NAME

    @property
    def tree(self) -> Path:
        return self._require() / TREE_NAME

    def __enter__(self) -> "ScratchWorkspace":
        self.parent.mkdir(parents=True, exist_ok=True)
        self.path = Path(tempfile.mkdtemp(prefix=f".scratch-{self.label}-", dir=self.parent))
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.release()

    def release(self) -> None:
        if self.path is None:
            return
        try:
            remove_tree(self.path)
        except OSError as e:
            # never mask the error that ended the with block
            print_warning(f"Failed to remove scratch workspace {self.path}: {e}")
        self.path = None

    def _require(self) -> Path:
        if self.path is None:
            raise RuntimeError("Scratch workspace is not active")
        return self.path
