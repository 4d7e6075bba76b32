"""
Command-line interface for snapvault.

This module wires settings, tools and components together and provides
the user-facing CLI commands:
- ls
- cat
- cp
- less
- verify
- restore
- pack
- clean
- help
"""

from __future__ import annotations

import sys
import json
import argparse
from typing import Any, List, Optional

from .adapters import Toolbox
from .catalog import ArchiveCatalog, ArchiveEntry, resolve
from .config import TOOL_VERSION
from .console import (
    Colors,
    colored,
    format_size,
    print_error,
    print_info,
    print_success,
)
from .errors import NotFound, VaultError
from .packer import Packer
from .pathspec import parse_archive_path
from .pipeline import SnapshotPipeline
from .restorer import Restorer
from .settings import Settings
from .tools import ToolRunner
from .verifier import Verifier, all_valid


# ---------------------------------------------------------------------------
# CLI context
# ---------------------------------------------------------------------------


class CLIContext:
    """Shared context for CLI commands."""

    def __init__(
        self,
        root: str,
        config_path: Optional[str],
        verbose: bool,
        quiet: bool,
    ):
        self.root = root
        self.config_path = config_path
        self.verbose = verbose
        self.quiet = quiet

        # Lazy-loaded
        self._settings: Optional[Settings] = None
        self._tools: Optional[Toolbox] = None
        self._catalog: Optional[ArchiveCatalog] = None

    @property
    def settings(self) -> Settings:
        """Load settings lazily."""
        if self._settings is None:
            self._settings = Settings.load(self.root, self.config_path)
        return self._settings

    @property
    def tools(self) -> Toolbox:
        if self._tools is None:
            runner = ToolRunner(
                timeout=self.settings.tools.timeout,
                trace=self.log_verbose if self.verbose else None,
            )
            self._tools = Toolbox.from_settings(self.settings, runner)
        return self._tools

    @property
    def catalog(self) -> ArchiveCatalog:
        if self._catalog is None:
            self._catalog = ArchiveCatalog(self.settings, self.tools.git)
        return self._catalog

    @property
    def pipeline(self) -> SnapshotPipeline:
        return SnapshotPipeline(self.settings, self.tools)

    def log(self, msg: str = "") -> None:
        """Log message if not quiet."""
        if not self.quiet:
            print(msg)

    def log_verbose(self, msg: str) -> None:
        """Log message if verbose."""
        if self.verbose:
            print(colored(f"  → {msg}", Colors.BLUE), file=sys.stderr)


def print_json(data: Any) -> None:
    print(json.dumps(data, indent=2))


def describe(entry: ArchiveEntry, one_line: bool = True) -> str:
    """``<hash> <message> └─ <name> • <size> • <author>``"""
    prov = entry.provenance
    message = prov.message if prov else "no commit info"
    author = prov.author if prov else "unknown"
    hash_str = f"{colored(prov.short_hash, Colors.BLUE)} " if prov else ""
    sep = " " if one_line else "\n"
    return (
        f"{hash_str}{colored(message, Colors.YELLOW)}{sep}"
        f"└─ {entry.name} • {format_size(entry.size)} • {colored(author, Colors.GREEN)}"
    )


# ---------------------------------------------------------------------------
# Command implementations
# ---------------------------------------------------------------------------


def cmd_ls(ctx: CLIContext, args: argparse.Namespace) -> int:
    """
    List archives, or show the details of one archive.
    """
    archives = ctx.catalog.list_archives()
    if not archives:
        ctx.log("No archives found")
        return 0

    if args.ref:
        return _show_info(ctx, args, archives)

    limit = ctx.settings.list_limit if args.limit is None else args.limit
    shown = archives[:limit] if limit else list(archives)

    if args.json:
        print_json([a.to_dict() for a in shown])
        return 0

    for index, entry in enumerate(shown):
        line = f"[{index}] {describe(entry)}"
        ctx.log(line + ("\n" if index < len(shown) - 1 else ""))

    if len(shown) < len(archives):
        ctx.log(colored(f"\n... {len(archives) - len(shown)} more (use --limit 0 to show all)", Colors.GRAY))
    return 0


def _show_info(ctx: CLIContext, args: argparse.Namespace, archives: List[ArchiveEntry]) -> int:
    spec = parse_archive_path(args.ref)
    entry = resolve(spec.archive_ref, archives)
    files = ctx.pipeline.inspect(entry, spec.file_pattern)

    if args.json:
        data = entry.to_dict()
        data["files"] = [f.to_dict() for f in files]
        print_json(data)
        return 0

    ctx.log(describe(entry, one_line=False))
    ctx.log(f"\n{colored('contents:', Colors.GRAY)}")
    for info in files:
        size = str(info.size).ljust(8)
        ctx.log(f"   {colored(size, Colors.GRAY)} {colored(info.modified.ljust(16), Colors.GRAY)} {info.name}")
    return 0


def cmd_cat(ctx: CLIContext, args: argparse.Namespace) -> int:
    """
    Write files from an archive to stdout.
    """
    spec = parse_archive_path(args.path)
    entry = ctx.catalog.find(spec.archive_ref)
    ctx.log_verbose(f"Reading {spec.file_pattern} from {entry.name}")
    ctx.pipeline.cat(entry, spec.file_pattern)
    return 0


def cmd_cp(ctx: CLIContext, args: argparse.Namespace) -> int:
    """
    Copy files from an archive into a destination directory.
    """
    spec = parse_archive_path(args.path)
    entry = ctx.catalog.find(spec.archive_ref)
    for rel, target in ctx.pipeline.copy(entry, spec.file_pattern, args.dest):
        ctx.log(f"Copied {rel} to {target}")
    return 0


def cmd_less(ctx: CLIContext, args: argparse.Namespace) -> int:
    """
    Page through files from an archive.
    """
    spec = parse_archive_path(args.path)
    entry = ctx.catalog.find(spec.archive_ref)
    ctx.pipeline.view(entry, spec.file_pattern)
    return 0


def cmd_verify(ctx: CLIContext, args: argparse.Namespace) -> int:
    """
    Verify one or more archives. Every target is checked even if an
    earlier one fails.
    """
    archives = ctx.catalog.list_archives()
    if not archives:
        raise NotFound("No archives found")

    if args.all:
        targets = list(archives)
    elif args.refs:
        targets = [resolve(parse_archive_path(ref).archive_ref, archives) for ref in args.refs]
    else:
        targets = [archives[0]]

    results = Verifier(ctx.settings, ctx.tools).verify_many(targets)
    ok = all_valid(results)

    if args.json:
        print_json({
            "status": "success" if ok else "error",
            "message": "all archives valid" if ok else "some archives failed verification",
            "results": [r.to_dict() for r in results],
        })
        return 0 if ok else 1

    for result in results:
        entry = result.entry
        size = format_size(entry.size)
        if result.valid and result.commit is not None:
            commit = result.commit
            ctx.log(
                f"{colored('✓', Colors.GREEN)} {colored(commit.subject, Colors.YELLOW)}\n"
                f"└─ {entry.name} • {size} • {colored(commit.author, Colors.GREEN)}\n"
                f"   {colored('created:', Colors.GRAY)} {commit.created}\n"
                f"   {colored('commit:', Colors.GRAY)}  {commit.hash}"
            )
        elif result.valid:
            ctx.log(f"{colored('✓', Colors.GREEN)} {describe(entry, one_line=False)}")
            reason = result.provenance_error or "archive is not committed"
            ctx.log(f"   {colored('provenance:', Colors.YELLOW)} {reason}")
        else:
            ctx.log(
                f"{colored('✖', Colors.RED)} {describe(entry, one_line=False)}\n"
                f"   {colored('error:', Colors.RED)} {result.error}"
            )

    if not ok:
        print_error("Some archives failed verification")
        return 1
    return 0


def cmd_restore(ctx: CLIContext, args: argparse.Namespace) -> int:
    """
    Replace the private directory with the contents of an archive.
    """
    entry = None
    if args.ref:
        entry = ctx.catalog.find(parse_archive_path(args.ref).archive_ref)

    restorer = Restorer(ctx.settings, ctx.tools, ctx.catalog)
    result = restorer.restore(entry)

    if args.json:
        print_json(result.to_dict())
        return 0

    ctx.log(describe(result.entry))
    ctx.log("")
    print_success(f"Successfully restored files to {ctx.settings.relative(result.restored_to)}")
    return 0


def cmd_pack(ctx: CLIContext, args: argparse.Namespace) -> int:
    """
    Create a new encrypted archive from the private directory.
    """
    packer = Packer(ctx.settings, ctx.tools, ctx.catalog)
    if not args.json:
        ctx.log("Creating encrypted archive..." if args.force else "Checking for changes...")

    result = packer.pack(force=args.force)

    if args.json:
        print_json(result.to_dict())
        return 0

    if result.changed:
        ctx.log("Changes detected. Created encrypted archive.")
    ctx.log(f"\nStaged new archive: {result.archive.name}")
    print_info('Run git commit -m "chore: add new archive" to save these changes')
    return 0


def cmd_clean(ctx: CLIContext, args: argparse.Namespace) -> int:
    """
    Remove all but the most recent uncommitted archive.
    """
    if not ctx.catalog.list_archives():
        ctx.log("No archives found")
        return 0

    result = Packer(ctx.settings, ctx.tools, ctx.catalog).clean()
    if not result.removed:
        ctx.log("No cleanup needed - at most one uncommitted archive")
        return 0

    for rel in result.removed:
        ctx.log(f"Removed {rel}")
    ctx.log("")
    print_success(f"Cleanup complete. Kept most recent uncommitted archive: {result.kept}")
    print_info('Run git commit -m "chore: clean up uncommitted archives" to save these changes')
    return 0


# ---------------------------------------------------------------------------
# Help
# ---------------------------------------------------------------------------


COMMANDS = {
    "ls": {
        "desc": "List archives",
        "usage": "ls [options] [archive-ref]",
        "options": [
            ("--json", "Output in JSON format"),
            ("--limit N", "Limit output to N entries (0 for unlimited)"),
        ],
        "examples": [
            ("ls", "List recent archives"),
            ("ls --limit 5", "Show 5 most recent archives"),
            ("ls /latest", "Show details of latest archive"),
            ("ls /2", "Show details of archive at index 2"),
        ],
    },
    "cat": {
        "desc": "Display contents of files from an archive",
        "usage": "cat <archive-path>",
        "options": [],
        "examples": [
            ("cat /latest/test.txt", "Show contents of test.txt from latest archive"),
            ("cat '/2/*.md'", "Show all markdown files from archive at index 2"),
        ],
    },
    "cp": {
        "desc": "Copy files from an archive to a destination",
        "usage": "cp <archive-path> <destination>",
        "options": [],
        "examples": [
            ("cp /latest/test.txt ./local/", "Copy test.txt from latest archive to ./local"),
            ("cp '/2/*.md' ./docs/", "Copy all markdown files from archive 2 to ./docs"),
        ],
    },
    "less": {
        "desc": "View files from an archive using a pager",
        "usage": "less <archive-path>",
        "options": [],
        "examples": [
            ("less /latest/test.txt", "View test.txt from latest archive"),
            ("less '/2/*.md'", "View all markdown files from archive at index 2"),
        ],
    },
    "verify": {
        "desc": "Verify archive integrity",
        "usage": "verify [options] [archive-ref ...]",
        "options": [
            ("--all", "Verify every archive"),
            ("--json", "Output in JSON format"),
        ],
        "examples": [
            ("verify", "Verify latest archive"),
            ("verify /2", "Verify archive at index 2"),
            ("verify --all", "Verify all archives"),
        ],
    },
    "restore": {
        "desc": "Restore files from an archive to the private directory",
        "usage": "restore [options] [archive-ref]",
        "options": [
            ("--json", "Output in JSON format"),
        ],
        "examples": [
            ("restore", "Restore from latest committed archive"),
            ("restore /2", "Restore from archive at index 2"),
        ],
    },
    "pack": {
        "desc": "Create a new encrypted archive from the private directory",
        "usage": "pack [options]",
        "options": [
            ("--force", "Create archive even if no changes detected"),
            ("--json", "Output in JSON format"),
        ],
        "examples": [
            ("pack", "Create archive if changes detected"),
            ("pack --force", "Create archive regardless of changes"),
        ],
    },
    "clean": {
        "desc": "Remove old uncommitted archives",
        "usage": "clean",
        "options": [],
        "examples": [
            ("clean", "Remove all but most recent uncommitted archive"),
        ],
    },
}


def command_help(name: str) -> str:
    command = COMMANDS[name]
    lines = [command["desc"], f"Usage: snapvault {command['usage']}"]
    if command["options"]:
        lines.append("")
        lines.append("Options:")
        for opt, desc in command["options"]:
            lines.append(f"  {opt.ljust(15)} {desc}")
    lines.append("")
    lines.append("Examples:")
    for example, desc in command["examples"]:
        lines.append(f"  {example.ljust(25)} {colored('# ' + desc, Colors.GRAY)}")
    return "\n".join(lines)


def cmd_help(ctx: Optional[CLIContext], args: argparse.Namespace) -> int:
    """
    Show help message.
    """
    topic = getattr(args, "topic", None)
    if topic:
        if topic not in COMMANDS:
            print_error(f"Unknown command: {topic}")
            return 1
        print(command_help(topic))
        return 0

    commands = "\n".join(
        f"  {colored(name.ljust(12), Colors.GREEN)} {colored(cmd['desc'], Colors.GRAY)}"
        for name, cmd in COMMANDS.items()
    )
    help_text = f"""
{colored('snapvault', Colors.BOLD)} — encrypted, git-tracked snapshots of a private directory

{colored('USAGE:', Colors.CYAN)}
  snapvault [global options] <command> [options]

{colored('COMMANDS:', Colors.CYAN)}
{commands}

{colored('ARCHIVE PATHS:', Colors.CYAN)}
  /<ref>/<file-or-glob>     <ref> is 'latest', an index from 'ls',
                            or a commit hash prefix

{colored('GLOBAL OPTIONS:', Colors.CYAN)}
  -C, --root DIR            Project directory (default: current directory)
  -c, --config PATH         Settings file (default: <root>/.snapvault.yml)
  -v, --verbose             Show every external command
  -q, --quiet               Suppress non-error output
  -h, --help                Show this help message and exit

{colored('ENVIRONMENT:', Colors.CYAN)}
  SNAPVAULT_PASSPHRASE      gpg passphrase (otherwise gpg-agent is asked)
  SNAPVAULT_RECIPIENT       Encrypt to this gpg key instead of a passphrase
  SNAPVAULT_ARCHIVE_DIR     Override the archive directory
  SNAPVAULT_PRIVATE_DIR     Override the private directory
  NO_COLOR                  Disable colored output

Use {colored('snapvault <command> --help', Colors.GREEN)} for detailed help on a command

{colored('VERSION:', Colors.CYAN)}
  {TOOL_VERSION}
"""
    print(help_text)
    return 0


# ---------------------------------------------------------------------------
# Argument parsing
# ---------------------------------------------------------------------------


def non_negative_int(value: str) -> int:
    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid integer: {value!r}")
    if number < 0:
        raise argparse.ArgumentTypeError(f"must be 0 or greater, got {number}")
    return number


def _add_command(subparsers, name: str) -> argparse.ArgumentParser:
    parser = subparsers.add_parser(name, help=COMMANDS[name]["desc"], add_help=False)
    parser.add_argument("-h", "--help", dest="command_help", action="store_true", help="Show help for this command")
    return parser


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser."""
    parser = argparse.ArgumentParser(
        prog="snapvault",
        description="Encrypted, git-tracked snapshots of a private directory",
        add_help=False,
    )

    # Global options
    parser.add_argument(
        "-C", "--root",
        default=".",
        help="Project directory",
    )
    parser.add_argument(
        "-c", "--config",
        default=None,
        help="Path to settings file",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose output",
    )
    parser.add_argument(
        "-q", "--quiet",
        action="store_true",
        help="Suppress non-error output",
    )
    parser.add_argument(
        "-h", "--help",
        action="store_true",
        help="Show help message",
    )

    # Subcommands
    subparsers = parser.add_subparsers(dest="command", help="Command to execute")

    ls_parser = _add_command(subparsers, "ls")
    ls_parser.add_argument("ref", nargs="?", help="Archive reference to show in detail")
    ls_parser.add_argument("--json", action="store_true", help="Output in JSON format")
    ls_parser.add_argument("--limit", type=non_negative_int, default=None, help="Limit output to N entries (0 for unlimited)")

    cat_parser = _add_command(subparsers, "cat")
    cat_parser.add_argument("path", nargs="?", help="Archive path: /<ref>/<file-or-glob>")

    cp_parser = _add_command(subparsers, "cp")
    cp_parser.add_argument("path", nargs="?", help="Archive path: /<ref>/<file-or-glob>")
    cp_parser.add_argument("dest", nargs="?", help="Destination directory")

    less_parser = _add_command(subparsers, "less")
    less_parser.add_argument("path", nargs="?", help="Archive path: /<ref>/<file-or-glob>")

    verify_parser = _add_command(subparsers, "verify")
    verify_parser.add_argument("refs", nargs="*", help="Archive references")
    verify_parser.add_argument("--all", action="store_true", help="Verify every archive")
    verify_parser.add_argument("--json", action="store_true", help="Output in JSON format")

    restore_parser = _add_command(subparsers, "restore")
    restore_parser.add_argument("ref", nargs="?", help="Archive reference")
    restore_parser.add_argument("--json", action="store_true", help="Output in JSON format")

    pack_parser = _add_command(subparsers, "pack")
    pack_parser.add_argument("--force", action="store_true", help="Create archive even if no changes detected")
    pack_parser.add_argument("--json", action="store_true", help="Output in JSON format")

    _add_command(subparsers, "clean")

    help_parser = subparsers.add_parser("help", help="Show help message")
    help_parser.add_argument("topic", nargs="?", help="Command to describe")

    return parser


# Positional arguments each command cannot run without
REQUIRED = {
    "cat": ("path",),
    "cp": ("path", "dest"),
    "less": ("path",),
}


# ---------------------------------------------------------------------------
# Main entry point
# ---------------------------------------------------------------------------


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    # Show help if requested or no command
    if args.help or not args.command:
        return cmd_help(None, args)

    if getattr(args, "command_help", False):
        print(command_help(args.command))
        return 0

    missing = [name for name in REQUIRED.get(args.command, ()) if not getattr(args, name)]
    if missing:
        print_error(f"Usage: snapvault {COMMANDS[args.command]['usage']}")
        return 1

    # Build context
    ctx = CLIContext(
        root=args.root,
        config_path=args.config,
        verbose=args.verbose,
        quiet=args.quiet,
    )

    # Dispatch to command
    commands = {
        "ls": cmd_ls,
        "cat": cmd_cat,
        "cp": cmd_cp,
        "less": cmd_less,
        "verify": cmd_verify,
        "restore": cmd_restore,
        "pack": cmd_pack,
        "clean": cmd_clean,
        "help": cmd_help,
    }

    cmd_func = commands.get(args.command)
    if not cmd_func:
        print_error(f"Unknown command: {args.command}")
        return 1

    try:
        return cmd_func(ctx, args)
    except KeyboardInterrupt:
        print_error("Interrupted")
        return 130
    except VaultError as e:
        print_error(str(e))
        return 1
    except Exception as e:
        print_error(f"Unexpected error: {e}")
        if args.verbose:
            import traceback
            traceback.print_exc()
        return 1


if __name__ == "__main__":
    sys.exit(main())
