"""pyptree - command line entry point."""

import argparse
import logging
import os
import shutil
import sys
from dataclasses import dataclass
from typing import TextIO

from pyptree.errors import SnapshotUnavailable, UsageError
from pyptree.filters import filter_forest
from pyptree.render import DEFAULT_WIDTH, format_forest
from pyptree.snapshot import SnapshotSource
from pyptree.tree import build_forest, normalize_records

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class TreeOptions:
    """Settings for one pyptree run."""

    pattern: str | None = None
    all_users: bool = False
    width: int | None = None  # None means detect from the terminal
    verbose: bool = False

    def __post_init__(self) -> None:
        if self.width is not None and self.width < 1:
            raise UsageError(f"width must be a positive integer, got {self.width}")


def build_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="pyptree",
        description="Show running processes as a tree.",
    )
    parser.add_argument(
        "pattern",
        nargs="?",
        help="only show processes whose command line contains PATTERN, "
        "with their ancestors and children",
    )
    parser.add_argument(
        "-a",
        "--all",
        dest="all_users",
        action="store_true",
        help="show processes of all users",
    )
    parser.add_argument(
        "-w",
        "--width",
        type=int,
        help="wrap output to WIDTH columns instead of the terminal width",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="log skipped and inconsistent processes to stderr",
    )
    return parser


def parse_args(argv: list[str] | None = None) -> TreeOptions:
    """
    Parse command line arguments into TreeOptions.

    Usage errors are reported by argparse, which exits with status 2.
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        return TreeOptions(
            pattern=args.pattern or None,
            all_users=args.all_users,
            width=args.width,
            verbose=args.verbose,
        )
    except UsageError as exc:
        parser.error(str(exc))


def terminal_width() -> int:
    """Get the output width, falling back to DEFAULT_WIDTH when unknown."""
    return shutil.get_terminal_size(fallback=(DEFAULT_WIDTH, 24)).columns


def run(options: TreeOptions, source: SnapshotSource, out: TextIO) -> None:
    """
    Collect, filter and print the process tree.

    Raises:
        SnapshotUnavailable: If the process table cannot be read.
    """
    snapshot = source.collect()
    forest = build_forest(normalize_records(snapshot.records))

    user = None if options.all_users else snapshot.current_user
    forest = filter_forest(forest, user=user, pattern=options.pattern)

    width = options.width or terminal_width()
    logger.debug("rendering %d processes at width %d", len(forest), width)
    out.write(format_forest(forest, width))


def main(argv: list[str] | None = None) -> int:
    """Entry point for pyptree."""
    options = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if options.verbose else logging.WARNING,
        format="%(name)s: %(levelname)s: %(message)s",
        stream=sys.stderr,
    )

    try:
        run(options, SnapshotSource(), sys.stdout)
    except SnapshotUnavailable as exc:
        print(f"pyptree: error: {exc}", file=sys.stderr)
        return 1
    except BrokenPipeError:
        # Reader went away (e.g. piped into head); stop quietly
        _discard_stdout()
    return 0


def _discard_stdout() -> None:
    """Point stdout at devnull so the flush at interpreter exit cannot fail."""
    try:
        stdout_fd = sys.stdout.fileno()
    except (OSError, ValueError):
        logger.debug("stdout has no file descriptor to redirect")
        return
    devnull = os.open(os.devnull, os.O_WRONLY)
    os.dup2(devnull, stdout_fd)
    os.close(devnull)


if __name__ == "__main__":
    sys.exit(main())
