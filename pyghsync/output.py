"""Console output formatting for the ghsync CLI."""

import json
from typing import Any, Optional

from rich.console import Console
from rich.table import Table


class OutputFormatter:
    """Prints human-readable (rich) or JSON output.

    Informational messages go to stdout; warnings and errors go to stderr
    so that JSON output stays machine-readable.
    """

    def __init__(self, json_output: bool = False, quiet: bool = False):
        self.json_output = json_output
        self.quiet = quiet
        self.console = Console()
        self.err_console = Console(stderr=True)

    def print(self, message: str = "") -> None:
        if not self.quiet and not self.json_output:
            self.console.print(message)

    def info(self, message: str) -> None:
        if not self.quiet and not self.json_output:
            self.console.print(message)

    def success(self, message: str) -> None:
        if not self.quiet and not self.json_output:
            self.console.print(f"[green]{message}[/green]")

    def warning(self, message: str) -> None:
        if not self.quiet:
            self.err_console.print(f"[yellow]Warning:[/yellow] {message}")

    def error(self, message: str) -> None:
        self.err_console.print(f"[red]Error:[/red] {message}")

    def output_json(self, data: Any) -> None:
        print(json.dumps(data, indent=2, default=str))

    def print_summary(self, title: str, rows: list[tuple[str, str]]) -> None:
        """Print a two-column summary table (or a JSON object in JSON mode)."""
        if self.json_output:
            self.output_json({key: value for key, value in rows})
            return
        if self.quiet:
            return

        table = Table(title=title, show_header=False)
        table.add_column("Field", style="bold")
        table.add_column("Value")
        for key, value in rows:
            table.add_row(key, value)
        self.console.print(table)

    def output_table(
        self, headers: list[str], rows: list[list[str]], title: Optional[str] = None
    ) -> None:
        if self.json_output:
            self.output_json([dict(zip(headers, row)) for row in rows])
            return
        if self.quiet:
            return

        table = Table(title=title)
        for header in headers:
            table.add_column(header)
        for row in rows:
            table.add_row(*row)
        self.console.print(table)
