"""
Typed wrappers around the external tools.

Each adapter knows the command line of exactly one program and turns its
output into Python values. Adapters never print and never clean up;
callers own scratch directories.
"""

from __future__ import annotations

import shlex
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional

from .config import GLOB_CHARS, SHORT_HASH_LENGTH, load_passphrase
from .errors import DecryptionFailed, ToolFailure
from .settings import Settings
from .tools import ToolRunner


# ---------------------------------------------------------------------------
# Version-control data models
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Provenance:
    commit_hash: str
    author: str
    message: str

    @property
    def short_hash(self) -> str:
        return self.commit_hash[:SHORT_HASH_LENGTH]


@dataclass(frozen=True)
class CommitInfo:
    hash: str
    author: str
    timestamp: int
    subject: str

    @property
    def created(self) -> str:
        return datetime.fromtimestamp(self.timestamp, tz=timezone.utc).strftime("%Y-%m-%d %H:%M:%S")


@dataclass(frozen=True)
class DiffResult:
    returncode: int
    output: str

    @property
    def changed(self) -> bool:
        return self.returncode != 0 or bool(self.output.strip())


def has_glob(pattern: str) -> bool:
    return any(ch in pattern for ch in GLOB_CHARS)


# ---------------------------------------------------------------------------
# Adapters
# ---------------------------------------------------------------------------


class Gpg:
    def __init__(
        self,
        runner: ToolRunner,
        executable: str = "gpg",
        recipient: Optional[str] = None,
        passphrase: Optional[str] = None,
    ):
        self.runner = runner
        self.executable = executable
        self.recipient = recipient
        self.passphrase = passphrase

    def _base_args(self) -> List[str]:
        args = ["--quiet", "--yes"]
        if self.passphrase is not None:
            # passphrase goes through stdin, never argv
            args += ["--batch", "--pinentry-mode", "loopback", "--passphrase-fd", "0"]
        return args

    def decrypt(self, src: str | Path, dest: str | Path) -> None:
        """Write the plaintext container of ``src`` to ``dest``."""
        args = self._base_args() + ["--output", str(dest), "--decrypt", str(src)]
        try:
            self.runner.run(self.executable, args, input=self.passphrase)
        except ToolFailure as e:
            raise DecryptionFailed(
                e.command,
                e.returncode,
                e.stderr,
                message=f"Failed to decrypt {Path(src).name}: {e}",
            )

    def encrypt(self, src: str | Path, dest: str | Path) -> None:
        if self.recipient:
            mode = ["--encrypt", "--recipient", self.recipient]
        else:
            mode = ["--symmetric"]
        args = self._base_args() + ["--output", str(dest)] + mode + [str(src)]
        self.runner.run(self.executable, args, input=self.passphrase)


class Tar:
    def __init__(self, runner: ToolRunner, executable: str = "tar"):
        self.runner = runner
        self.executable = executable

    def extract(self, container: str | Path, target: str | Path) -> None:
        self.runner.run(self.executable, ["-xf", str(container), "-C", str(target)])

    def check(self, container: str | Path) -> List[str]:
        """List member names; raises ToolFailure on a malformed container."""
        result = self.runner.run(self.executable, ["-tf", str(container)])
        return [line for line in result.stdout.splitlines() if line]

    def create(self, source_dir: str | Path, container: str | Path) -> None:
        self.runner.run(self.executable, ["-cf", str(container), "-C", str(source_dir), "."])


class Git:
    """Queries run from the project root with root-relative paths."""

    LOG_FORMAT = "%H|%an <%ae>|%s"
    SHOW_FORMAT = "%h%n%an <%ae>%n%at%n%s"

    def __init__(self, runner: ToolRunner, root: str | Path, executable: str = "git"):
        self.runner = runner
        self.root = Path(root)
        self.executable = executable

    def last_commit(self, path: str) -> Optional[Provenance]:
        """
        Most recent commit touching ``path``.

        Returns None when the path has no history or the root is not a
        repository.
        """

        result = self.runner.run(
            self.executable,
            ["log", "-n", "1", f"--format={self.LOG_FORMAT}", "--", path],
            cwd=self.root,
            check=False,
        )
        line = result.stdout.strip()
        if not result.ok or not line:
            return None

        parts = line.split("|", 2)
        if len(parts) != 3 or not parts[0]:
            return None
        commit_hash, author, message = parts
        return Provenance(commit_hash=commit_hash, author=author, message=message)

    def show_commit(self, commit: str) -> CommitInfo:
        result = self.runner.run(
            self.executable,
            ["show", "--no-patch", f"--format={self.SHOW_FORMAT}", commit],
            cwd=self.root,
        )
        lines = result.stdout.splitlines()
        if len(lines) < 4:
            raise ToolFailure(result.command, result.returncode, message=f"Unexpected git show output for {commit}")
        short, author, timestamp, subject = lines[:4]
        try:
            epoch = int(timestamp)
        except ValueError:
            raise ToolFailure(result.command, result.returncode, message=f"Bad commit timestamp: {timestamp!r}")
        return CommitInfo(hash=short, author=author, timestamp=epoch, subject=subject)

    def add(self, path: str) -> None:
        self.runner.run(self.executable, ["add", "--", path], cwd=self.root)

    def untracked(self, pattern: str) -> List[str]:
        result = self.runner.run(
            self.executable,
            ["ls-files", "--others", "--exclude-standard", "--", pattern],
            cwd=self.root,
        )
        return [line for line in result.stdout.splitlines() if line]


class Diff:
    def __init__(self, runner: ToolRunner, executable: str = "diff"):
        self.runner = runner
        self.executable = executable

    def recursive(self, left: str | Path, right: str | Path) -> DiffResult:
        """
        Compare two trees. Exit 0 means identical; exit 1 or any output
        means different. Symlinks are compared as links, so dangling ones
        do not break the comparison. A failure with no output at all is a
        tool failure.
        """

        args = ["-r", "--no-dereference", str(left), str(right)]
        result = self.runner.run(self.executable, args, check=False)
        output = result.stdout + result.stderr
        if result.returncode > 1 and not output.strip():
            raise ToolFailure(result.command, result.returncode, result.stderr)
        return DiffResult(returncode=result.returncode, output=output)


class Find:
    def __init__(self, runner: ToolRunner, executable: str = "find"):
        self.runner = runner
        self.executable = executable

    def files(self, root: str | Path, pattern: str) -> List[str]:
        """Regular files under ``root`` matching ``pattern``, relative to root."""
        if "/" in pattern:
            rel = pattern[2:] if pattern.startswith("./") else pattern
            test = ["-path", "./" + rel]
        else:
            test = ["-name", pattern]
        result = self.runner.run(self.executable, [".", "-type", "f"] + test, cwd=root)

        files = []
        for line in result.stdout.splitlines():
            if not line:
                continue
            files.append(line[2:] if line.startswith("./") else line)
        return sorted(files)


class Pager:
    def __init__(self, runner: ToolRunner, command: str = "less"):
        self.runner = runner
        self.command = shlex.split(command) or ["less"]

    def page(self, path: str | Path) -> None:
        self.runner.run(self.command[0], self.command[1:] + [str(path)], capture=False)


# ---------------------------------------------------------------------------
# Toolbox
# ---------------------------------------------------------------------------


@dataclass
class Toolbox:
    """Every adapter a command may need, sharing one runner."""

    runner: ToolRunner
    gpg: Gpg
    tar: Tar
    git: Git
    diff: Diff
    find: Find
    pager: Pager

    @classmethod
    def from_settings(cls, settings: Settings, runner: Optional[ToolRunner] = None) -> "Toolbox":
        runner = runner or ToolRunner(timeout=settings.tools.timeout)
        tools = settings.tools
        return cls(
            runner=runner,
            gpg=Gpg(runner, tools.gpg, settings.encryption.recipient, load_passphrase()),
            tar=Tar(runner, tools.tar),
            git=Git(runner, settings.root, tools.git),
            diff=Diff(runner, tools.diff),
            find=Find(runner, tools.find),
            pager=Pager(runner, tools.pager),
        )
