from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from . import __version__
from ._logging import get_logger, setup_colored_logging

logger = get_logger(__name__)

_DESCRIPTION = """\
extmethod-lsp: extension method completion for C#

Suggests every applicable extension method at a member access, including
those from namespaces that are not imported yet, and adds the missing
using directive when a suggestion is accepted.

Commands:
• server: run the Language Server (stdio or TCP)
• complete: print the suggestions for one caret position"""


def main():
    """Main entry point for the language server."""
    parser = argparse.ArgumentParser(
        description=_DESCRIPTION,
        prog="extmethod-lsp",
        formatter_class=argparse.RawTextHelpFormatter,
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "--log-level",
        type=str,
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Set the logging level (default: %(default)s)",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Server subcommand
    server_parser = subparsers.add_parser(
        "server",
        help="Start the LSP server",
        formatter_class=argparse.RawTextHelpFormatter,
    )
    server_parser.add_argument("--tcp", action="store_true", help="Use TCP instead of stdio")
    server_parser.add_argument(
        "--port", type=int, default=8080, help="TCP port to listen on (default: %(default)s)"
    )
    server_parser.add_argument("--stdio", action="store_true", help="Use stdio (default)")

    # Complete subcommand
    complete_parser = subparsers.add_parser(
        "complete",
        help="Print extension method suggestions at a position of a C# file",
        formatter_class=argparse.RawTextHelpFormatter,
    )
    complete_parser.add_argument("file", type=str, help="C# file to complete in")
    complete_parser.add_argument("--line", type=int, required=True, help="1-based line of the caret")
    complete_parser.add_argument(
        "--column", type=int, required=True, help="1-based column of the caret"
    )
    complete_parser.add_argument(
        "--source",
        action="append",
        default=[],
        help="Other C# file or directory of the same program (repeatable)",
    )
    complete_parser.add_argument(
        "--reference",
        action="append",
        default=[],
        help="C# file or directory describing a referenced library (repeatable)",
    )

    args = parser.parse_args()

    # Require explicit subcommand
    if args.command is None:
        parser.error(
            "A subcommand is required. Use 'extmethod-lsp server' to start the LSP server.\n"
            "See 'extmethod-lsp --help' for available commands."
        )

    # Configure colored logging
    log_level = getattr(logging, args.log_level)
    setup_colored_logging(level=log_level)

    if args.command == "complete":
        _run_complete(args)
        return

    if args.command == "server":
        # Check for mutually exclusive options
        if args.tcp and args.stdio:
            parser.error("--tcp and --stdio are mutually exclusive")

        # Import server only when actually needed
        from ._server.server import create_server

        server = create_server()

        if args.tcp:
            logger.info(f"Starting extmethod-lsp server ({__version__}) on TCP port {args.port}")
            server.start_tcp("localhost", args.port)
        else:
            logger.info(f"Starting extmethod-lsp server ({__version__}) on stdio")
            server.start_io()


def _expand_paths(paths: list[str]) -> list[Path]:
    """
    Expand file/directory paths to a list of C# files.

    Directories are recursively searched for .cs files, excluding
    build output and tooling directories.

    Args:
        paths: List of file or directory paths to expand

    Returns:
        List of Path objects pointing to C# files
    """
    from .constants import EXCLUDED_DIRS

    csharp_files: list[Path] = []

    for path_str in paths:
        path = Path(path_str)
        if not path.exists():
            print(f"Error: Path not found: {path_str}", file=sys.stderr)
            sys.exit(1)

        if path.is_file():
            if path.suffix == ".cs":
                csharp_files.append(path)
            else:
                print(f"Error: Not a C# file: {path_str}", file=sys.stderr)
                sys.exit(1)
        elif path.is_dir():
            csharp_files.extend(
                cs_file
                for cs_file in sorted(path.rglob("*.cs"))
                if not any(parent.name in EXCLUDED_DIRS for parent in cs_file.parents)
            )
        else:
            print(f"Error: Invalid path: {path_str}", file=sys.stderr)
            sys.exit(1)

    return csharp_files


def _run_complete(args) -> None:
    """Run the complete command and print one suggestion per line."""
    from ._analyzer.compilation import Compilation, SourceDocument
    from ._completion import AggregateCompletionProvider, ExtensionMethodsCompletionProvider
    from .metadata import build_reference_from_files, default_references
    from .options import CompletionOptions

    path = Path(args.file)
    if not path.is_file():
        print(f"Error: File not found: {args.file}", file=sys.stderr)
        sys.exit(1)
    document = SourceDocument(str(path), path.read_text(encoding="utf-8-sig"))

    references = list(default_references())
    reference_files = _expand_paths(args.reference)
    if reference_files:
        references.append(build_reference_from_files("UserReferences", reference_files))

    sources = [document]
    for source in _expand_paths(args.source):
        if source.resolve() != path.resolve():
            sources.append(SourceDocument(str(source), source.read_text(encoding="utf-8-sig")))

    compilation = Compilation(sources, references)
    offset = _line_column_to_offset(document.text, args.line, args.column)
    if offset is None:
        print(f"Error: Position {args.line}:{args.column} is outside {args.file}", file=sys.stderr)
        sys.exit(1)

    options = CompletionOptions.from_environment()
    provider = AggregateCompletionProvider(options, ExtensionMethodsCompletionProvider())
    items = provider.provide_completions(compilation, document, offset)

    if not items:
        print("No suggestions")
        return
    for item in items:
        namespace = item.origin_namespace or "<global>"
        print(f"{item.display_text}\t{namespace}\t{item.detail}")


def _line_column_to_offset(text: str, line: int, column: int) -> int | None:
    lines = text.split("\n")
    if not 1 <= line <= len(lines):
        return None
    if not 1 <= column <= len(lines[line - 1]) + 1:
        return None
    return sum(len(previous) + 1 for previous in lines[: line - 1]) + column - 1


if __name__ == "__main__":
    main()
