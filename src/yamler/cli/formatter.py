# src/yamler/cli/formatter.py
import difflib
import io
from typing import Any, List, Tuple

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.syntax import Syntax
from rich.table import Table
from ruamel.yaml import YAML

# Initialize the Rich console for high-quality terminal output
console = Console()


def dump_value(value: Any) -> str:
    """Block YAML text of a plain value, as printed by `yamler get`."""
    yaml = YAML(typ='safe', pure=True)
    yaml.default_flow_style = False
    stream = io.StringIO()
    yaml.dump(value, stream)
    return stream.getvalue()


class YamlerFormatter:
    """
    Renders values, diffs and reports for the CLI.
    """

    def print_value(self, value: Any):
        if isinstance(value, (dict, list)):
            console.print(Syntax(dump_value(value).rstrip("\n"), "yaml", theme="monokai"))
        elif value is None:
            console.print("null", markup=False, highlight=False)
        elif isinstance(value, bool):
            console.print("true" if value else "false", markup=False, highlight=False)
        else:
            console.print(str(value), markup=False, highlight=False, soft_wrap=True)

    def display_diff(self, original_text: str, new_text: str, file_name: str) -> bool:
        """
        Renders a colorized unified diff between the file on disk and the
        edited document. Returns False when the texts are identical.
        """
        diff_list = list(difflib.unified_diff(
            original_text.splitlines(),
            new_text.splitlines(),
            fromfile=f"a/{file_name}",
            tofile=f"b/{file_name}",
            lineterm=""
        ))

        if not diff_list:
            console.print(f"[dim]No changes for {escape(file_name)}.[/dim]")
            return False

        syntax = Syntax("\n".join(diff_list), "diff", theme="monokai", line_numbers=True)
        console.print(Panel(syntax, title=f"Proposed edit: {escape(file_name)}", border_style="green"))
        return True

    def print_paths(self, rows: List[Tuple[str, str]], title: str):
        table = Table(title=escape(title), show_header=True, header_style="bold magenta")
        table.add_column("Path", style="cyan")
        table.add_column("Type")
        for path, kind in rows:
            table.add_row(escape(path), kind)
        console.print(table)

    def print_check_table(self, file_name: str, lines: int, identical: bool):
        """Summary of an idempotence check."""
        table = Table(title="Round-trip Report", show_header=True, header_style="bold magenta")
        table.add_column("File Path", style="dim")
        table.add_column("Lines", justify="right")
        table.add_column("Status")
        table.add_column("Result", justify="center")
        table.add_row(
            escape(file_name),
            str(lines),
            "[green]IDENTICAL[/green]" if identical else "[red]DRIFT[/red]",
            "✅" if identical else "❌",
        )
        console.print(table)

    def print_failures(self, file_name: str, failures: List[str]):
        if not failures:
            console.print(f"[bold green]✅ {escape(file_name)} matches the schema.[/bold green]")
            return
        table = Table(title=f"Validation failures: {escape(file_name)}", show_lines=True, header_style="bold red")
        table.add_column("#", justify="right")
        table.add_column("Failure")
        for position, failure in enumerate(failures, 1):
            table.add_row(str(position), escape(failure))
        console.print(table)
