"""Entry point for the interactive aiderlink front end.

Usage:
    python -m aiderlink [PATH] [--subtree-only] [-v ...]

PATH is a file or directory inside the project to work on (default: the
current directory).
"""

from __future__ import annotations

import argparse
import asyncio
import os
import sys
from collections.abc import Sequence
from pathlib import Path

from aiderlink import __version__
from aiderlink.config import load_config
from aiderlink.errors import ConfigurationError
from aiderlink.filesystem import find_project_root, working_directory
from aiderlink.logging import get_logger, setup_logging

log = get_logger()


def create_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="aiderlink",
        description="Drive aider sessions scoped to projects and subtrees",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "path",
        nargs="?",
        default=".",
        help="File or directory to start in (default: current directory)",
    )
    parser.add_argument(
        "--subtree-only",
        action="store_true",
        default=None,
        help="Scope sessions to the directory itself, not the repository root",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="count",
        default=None,
        help="Increase verbosity (repeat up to 4 times)",
    )
    parser.add_argument(
        "--program",
        help="Assistant executable (overrides config)",
    )
    parser.add_argument(
        "--history",
        type=Path,
        help="Prompt history file",
    )
    return parser


async def _run(args: argparse.Namespace) -> int:
    from aiderlink.interactive import InteractiveRepl
    from aiderlink.session.registry import SessionRegistry
    from aiderlink.terminal import SubprocessTransport

    root = find_project_root(working_directory(args.path))
    if root is None:
        raise ConfigurationError(f"Not a usable directory: {args.path}")

    config = load_config(project_root=root)
    if args.verbose is not None:
        config.logging.verbose = min(args.verbose, 4)
    if args.program:
        config.aider.program = args.program
    setup_logging(config.logging)
    log.debug("Project root %s", root)

    registry = SessionRegistry(
        lambda: SubprocessTransport.from_config(config.transport),
        config=config,
    )
    repl = InteractiveRepl(
        registry,
        args.path,
        subtree_only=args.subtree_only,
        history_file=args.history,
    )
    try:
        await repl.run()
    finally:
        await registry.close_all()
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    parser = create_parser()
    args = parser.parse_args(argv)

    if not os.path.exists(args.path):
        parser.error(f"No such file or directory: {args.path}")

    try:
        return asyncio.run(_run(args))
    except ConfigurationError as e:
        print(f"aiderlink: {e}", file=sys.stderr)
        return 2
    except KeyboardInterrupt:
        return 130


if __name__ == "__main__":
    sys.exit(main())
