"""
snapvault

Keeps a git-tracked, chronologically ordered series of gpg-encrypted tar
snapshots of a private directory, and lets you list, read, verify and
restore them by reference.
"""

__version__ = "0.1.0"

from .catalog import ArchiveCatalog, ArchiveEntry, resolve, latest_committed
from .pathspec import ArchivePathSpec, parse_archive_path
from .pipeline import SnapshotPipeline
from .changes import ChangeDetector
from .verifier import Verifier, VerifyResult
from .restorer import Restorer
from .packer import Packer
from .settings import Settings

__all__ = [
    "ArchiveCatalog",
    "ArchiveEntry",
    "resolve",
    "latest_committed",
    "ArchivePathSpec",
    "parse_archive_path",
    "SnapshotPipeline",
    "ChangeDetector",
    "Verifier",
    "VerifyResult",
    "Restorer",
    "Packer",
    "Settings",
]
