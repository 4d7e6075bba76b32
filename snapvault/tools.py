"""
External tool execution.

Every external program (gpg, tar, git, diff, find, the pager) goes through
ToolRunner.run. Commands are argument lists, never shell strings.

This module does NOT:
- know what any particular tool does
- decide whether a failure is fatal to the command
"""

from __future__ import annotations

import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Optional, Sequence

from .errors import ToolFailure


@dataclass(frozen=True)
class ToolResult:
    command: List[str]
    returncode: int
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.returncode == 0


class ToolRunner:
    """
    Runs external executables and turns failures into ToolFailure.

    Args:
        timeout: seconds before a hung tool is killed (None waits forever)
        trace: optional callback receiving each command line before it runs
    """

    def __init__(
        self,
        timeout: Optional[float] = None,
        trace: Optional[Callable[[str], None]] = None,
    ):
        self.timeout = timeout
        self.trace = trace

    def run(
        self,
        executable: str,
        args: Sequence[str | Path] = (),
        *,
        cwd: Optional[str | Path] = None,
        input: Optional[str] = None,
        capture: bool = True,
        check: bool = True,
    ) -> ToolResult:
        """
        Run ``executable`` with ``args`` and wait for it.

        With ``capture=False`` stdout/stderr are inherited from this
        process (pager, interactive gpg); stdin is inherited unless
        ``input`` is given.

        Raises:
            ToolFailure: on non-zero exit (when ``check``), a missing
                executable, or a timeout
        """

        command = [executable] + [str(a) for a in args]
        if self.trace:
            self.trace(" ".join(command))

        try:
            proc = subprocess.run(
                command,
                cwd=str(cwd) if cwd is not None else None,
                input=input,
                stdout=subprocess.PIPE if capture else None,
                stderr=subprocess.PIPE if capture else None,
                text=True,
                errors="replace",
                timeout=self.timeout,
            )
        except FileNotFoundError:
            raise ToolFailure(command, message=f"executable not found: {executable}")
        except subprocess.TimeoutExpired:
            raise ToolFailure(command, message=f"{executable} timed out after {self.timeout}s")

        result = ToolResult(
            command=command,
            returncode=proc.returncode,
            stdout=proc.stdout or "",
            stderr=proc.stderr or "",
        )

        if check and not result.ok:
            raise ToolFailure(command, result.returncode, result.stderr)

        return result
