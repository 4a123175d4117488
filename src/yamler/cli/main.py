#!/usr/bin/env python3
"""
YAMLER CLI - Formatting-Preserving YAML Editing
-----------------------------------------------
Command-line front end over the Document facade:

  yamler get FILE PATH
  yamler set FILE PATH VALUE [--dry-run] [--diff] [--comment-column N | --no-comments]
  yamler paths FILE [PATTERN]
  yamler check FILE
  yamler validate FILE SCHEMA
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import Any, List, Optional

from rich.markup import escape
from rich.panel import Panel
from ruamel.yaml import YAML, YAMLError

from yamler.cli.formatter import YamlerFormatter, console
from yamler.core.document import Document
from yamler.core.errors import YamlerError
from yamler.core.nodes import to_value
from yamler.validator.validator import SchemaValidator, load_schema_file

logger = logging.getLogger("yamler.cli")

VERSION = "0.1.0"


def parse_cli_value(text: str) -> Any:
    """
    Reads VALUE the way it would read inside a YAML file: `8080` is an
    int, `[a, b]` a list, `true` a bool. Anything that does not parse
    as YAML is taken as a plain string.
    """
    try:
        return YAML(typ='safe', pure=True).load(text)
    except YAMLError:
        logger.debug("cli: %r is not a YAML value, using it as a string", text)
        return text


def _kind(value: Any) -> str:
    if isinstance(value, dict):
        return "map"
    if isinstance(value, list):
        return "list"
    if value is None:
        return "null"
    return type(value).__name__


class YamlerCLI:
    """
    CLI wrapper that translates user commands into Document actions.
    """

    def __init__(self):
        self.parser = argparse.ArgumentParser(
            prog="yamler",
            description="yamler - edit YAML files without losing their formatting",
            formatter_class=argparse.RawDescriptionHelpFormatter,
        )
        self.formatter = YamlerFormatter()
        self._setup_args()

    def _setup_args(self):
        """Configures the command-line flags and subcommands."""
        self.parser.add_argument("--version", action="version", version=f"yamler {VERSION}")
        self.parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
        subparsers = self.parser.add_subparsers(dest="command", metavar="Command")

        get_parser = subparsers.add_parser("get", help="Print the value at a path")
        get_parser.add_argument("file", help="YAML file")
        get_parser.add_argument("path", help="Dotted path, e.g. spec.containers[0].image")

        set_parser = subparsers.add_parser("set", help="Set the value at a path")
        set_parser.add_argument("file", help="YAML file")
        set_parser.add_argument("path", help="Dotted path")
        set_parser.add_argument("value", help="New value, read as a YAML scalar or flow value")
        set_parser.add_argument("--dry-run", action="store_true", help="Print the result without writing")
        set_parser.add_argument("--diff", action="store_true", help="Show a unified diff of the edit")
        comments = set_parser.add_mutually_exclusive_group()
        comments.add_argument("--comment-column", type=int, metavar="N",
                              help="Align inline comments at column N")
        comments.add_argument("--no-comments", action="store_true", help="Strip inline comments")

        paths_parser = subparsers.add_parser("paths", help="List paths, optionally filtered by a pattern")
        paths_parser.add_argument("file", help="YAML file")
        paths_parser.add_argument("pattern", nargs="?", help="Wildcard pattern (*, **, [*])")

        check_parser = subparsers.add_parser("check", help="Verify that an unedited round trip is byte-identical")
        check_parser.add_argument("file", help="YAML file")

        validate_parser = subparsers.add_parser("validate", help="Validate a file against a schema")
        validate_parser.add_argument("file", help="YAML file")
        validate_parser.add_argument("schema", help="Schema file (YAML)")

    # --- COMMANDS ---

    def _cmd_get(self, args: argparse.Namespace) -> int:
        doc = Document.load_file(args.file)
        self.formatter.print_value(doc.get(args.path))
        return 0

    def _cmd_set(self, args: argparse.Namespace) -> int:
        target = Path(args.file)
        doc = Document.load_file(target)
        if args.comment_column is not None:
            doc.set_absolute_comment_alignment(args.comment_column)
        elif args.no_comments:
            doc.disable_comment_alignment()

        before = target.read_bytes().decode("utf-8-sig")
        doc.set(args.path, parse_cli_value(args.value))
        after = doc.to_string()

        if args.diff:
            self.formatter.display_diff(before, after, target.name)
        if args.dry_run:
            if not args.diff:
                console.print(after, markup=False, highlight=False, end="")
            return 0

        doc.save(target)
        console.print(f"[bold green]✅ Updated[/bold green] {escape(args.path)} in [cyan]{escape(str(target))}[/cyan]")
        return 0

    def _cmd_paths(self, args: argparse.Namespace) -> int:
        doc = Document.load_file(args.file)
        if args.pattern:
            rows = [(path, _kind(value)) for path, value in doc.get_all(args.pattern).items()]
            title = f"Paths matching {args.pattern}"
        else:
            rows = [(path, _kind(doc.get(path))) for path in doc.get_paths_recursive()]
            title = f"Paths in {Path(args.file).name}"
        self.formatter.print_paths(rows, title)
        return 0

    def _cmd_check(self, args: argparse.Namespace) -> int:
        target = Path(args.file)
        doc = Document.load_file(target)
        original = target.read_bytes().decode("utf-8-sig")
        rendered = doc.to_string()
        identical = rendered == original
        self.formatter.print_check_table(target.name, original.count("\n"), identical)
        if not identical:
            self.formatter.display_diff(original, rendered, target.name)
        return 0 if identical else 1

    def _cmd_validate(self, args: argparse.Namespace) -> int:
        doc = Document.load_file(args.file)
        rule = load_schema_file(args.schema)
        failures = SchemaValidator().collect(to_value(doc.root), rule)
        self.formatter.print_failures(Path(args.file).name, failures)
        return 1 if failures else 0

    # --- ROUTING ---

    def print_header(self, subtitle: str):
        console.print(Panel.fit(
            f"[bold cyan]yamler v{VERSION}[/bold cyan]",
            title=f"[bold white]{subtitle}[/bold white]",
            border_style="cyan"
        ))

    def run(self, argv: Optional[List[str]] = None) -> int:
        """Primary routing entry point; returns the process exit code."""
        args = self.parser.parse_args(argv)
        logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING)

        handlers = {
            "get": self._cmd_get,
            "set": self._cmd_set,
            "paths": self._cmd_paths,
            "check": self._cmd_check,
            "validate": self._cmd_validate,
        }
        handler = handlers.get(args.command)
        if handler is None:
            self.print_header("Formatting-preserving YAML editor")
            self.parser.print_help()
            return 0

        try:
            return handler(args)
        except (YamlerError, OSError) as e:
            console.print(f"[bold red]Error:[/bold red] {escape(str(e))}", highlight=False)
            return 1


def main():
    """Application entry point with interrupt handling."""
    try:
        sys.exit(YamlerCLI().run())
    except KeyboardInterrupt:
        console.print("\n[bold red]Terminated by user.[/bold red]")
        sys.exit(1)


if __name__ == "__main__":
    main()
