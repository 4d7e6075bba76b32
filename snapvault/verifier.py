"""
Archive integrity verification.

Two stages per archive:
1. decrypt the archive and confirm tar can read the container
2. fetch the commit that recorded it and cross-check the hash

Stage 1 decides validity. A commit lookup that fails is reported but does
not invalidate the archive; a commit that does not match the recorded
hash does.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence

from .adapters import CommitInfo, Toolbox
from .catalog import ArchiveEntry
from .errors import IntegrityFailure, ToolFailure, VaultError
from .settings import Settings
from .workspace import ScratchWorkspace


@dataclass
class VerifyResult:
    entry: ArchiveEntry
    valid: bool
    error: Optional[str] = None
    commit: Optional[CommitInfo] = None
    provenance_error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"name": self.entry.name, "valid": self.valid}
        if self.error:
            data["error"] = self.error
        if self.commit is not None:
            data["commit"] = {
                "hash": self.commit.hash,
                "author": self.commit.author,
                "created": self.commit.created,
                "subject": self.commit.subject,
            }
        if self.provenance_error:
            data["provenance_error"] = self.provenance_error
        return data


class Verifier:
    def __init__(self, settings: Settings, tools: Toolbox):
        self.settings = settings
        self.tools = tools

    def verify(self, entry: ArchiveEntry) -> VerifyResult:
        """Verify one archive. Never raises for a bad archive."""
        result = VerifyResult(entry=entry, valid=False)

        try:
            with ScratchWorkspace(self.settings.scratch_root, "verify") as ws:
                self.tools.gpg.decrypt(entry.path, ws.container)
                try:
                    self.tools.tar.check(ws.container)
                except ToolFailure as e:
                    raise IntegrityFailure(f"Unreadable container in {entry.name}: {e}")
        except VaultError as e:
            result.error = str(e)
            return result

        if entry.provenance is not None:
            try:
                result.commit = self.tools.git.show_commit(entry.provenance.commit_hash)
            except ToolFailure as e:
                result.provenance_error = str(e)
            else:
                recorded = entry.provenance.commit_hash
                if not (recorded.startswith(result.commit.hash) or result.commit.hash.startswith(recorded)):
                    result.error = str(
                        IntegrityFailure(
                            f"Provenance mismatch for {entry.name}: recorded {recorded}, got {result.commit.hash}"
                        )
                    )
                    return result

        result.valid = True
        return result

    def verify_many(self, entries: Sequence[ArchiveEntry]) -> List[VerifyResult]:
        """Verify every entry in order; one failure does not stop the rest."""
        return [self.verify(entry) for entry in entries]


def all_valid(results: Sequence[VerifyResult]) -> bool:
    return all(r.valid for r in results)
