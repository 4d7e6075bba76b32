"""
Archive path parsing.

An archive path names an archive and, optionally, files inside it:

    /<ref>/<glob-or-literal>

``<ref>`` is resolved later by the catalog; this module only splits.
"""

from __future__ import annotations

from dataclasses import dataclass

from .errors import InvalidPath


DEFAULT_PATTERN = "*"


@dataclass(frozen=True)
class ArchivePathSpec:
    archive_ref: str
    file_pattern: str = DEFAULT_PATTERN


def parse_archive_path(path: str) -> ArchivePathSpec:
    """
    Split ``/<ref>/<pattern>`` into its parts.

    A missing leading slash is tolerated (``abc/x.txt`` is ``/abc/x.txt``)
    and empty segments are dropped, so ``//abc//x`` parses like ``/abc/x``.

    Raises:
        InvalidPath: if no segment remains
    """

    if not path.startswith("/"):
        path = "/" + path

    parts = [p for p in path.split("/") if p]
    if not parts:
        raise InvalidPath(f"Invalid archive path: {path!r}")

    return ArchivePathSpec(
        archive_ref=parts[0],
        file_pattern="/".join(parts[1:]) or DEFAULT_PATTERN,
    )
