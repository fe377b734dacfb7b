# src/stackpatch/cli/formatter.py
import difflib
from typing import Any, Dict, List, Optional

from rich.console import Console
from rich.panel import Panel
from rich.syntax import Syntax
from rich.table import Table

from stackpatch.core.errors import StackPatchError


class ReportFormatter:
    """
    ReportFormatter: every piece of terminal output the CLI produces.
    Renders diffs, failures and the final execution report.
    """

    def __init__(self, console: Optional[Console] = None):
        self.console = console or Console()

    def print_header(self, subtitle: str, version: str):
        self.console.print(Panel.fit(
            f"[bold cyan]StackPatch v{version}[/bold cyan]\n"
            "══════════════════════════════════════════════════",
            title=f"[bold white]{subtitle}[/bold white]",
            border_style="cyan"
        ))

    def display_diff(self, original_text: str, new_text: str, file_name: str):
        """Unified diff between the document on disk and the transformed one."""
        diff_list = list(difflib.unified_diff(
            original_text.splitlines(),
            new_text.splitlines(),
            fromfile=f"a/{file_name}",
            tofile=f"b/{file_name}",
            lineterm=""
        ))

        if not diff_list:
            self.console.print(f"[dim]ℹ No changes needed for {file_name}.[/dim]")
            return

        syntax = Syntax("\n".join(diff_list), "diff", theme="monokai", line_numbers=True)
        self.console.print(Panel(syntax, title=f"Proposed changes: {file_name}", border_style="green"))

    def print_error(self, error: StackPatchError):
        stage = f" during [bold]{error.stage}[/bold]" if error.stage else ""
        subject = f" [white]({error.subject})[/white]" if error.subject else ""
        self.console.print(f"[bold red]❌ Failed{stage}:[/bold red] {error.message}{subject}")

    def print_final_table(self, reports: List[Dict[str, Any]], summary: Dict[str, Any], dry_run: bool):
        table = Table(title="StackPatch Execution Report", show_lines=True, header_style="bold magenta")
        table.add_column("Document", style="cyan")
        table.add_column("Target", style="white")
        table.add_column("Status", style="bold")
        table.add_column("Result", justify="center")

        for r in reports:
            status = r.get("status", "FAILED")
            color = {"UPDATED": "green", "PREVIEW": "yellow", "UNCHANGED": "dim"}.get(status, "red")
            target = r.get("service") or r.get("block_name") or "-"
            table.add_row(
                str(r.get("document_path")), str(target),
                f"[{color}]{status}[/{color}]",
                "✅" if status in ("UPDATED", "UNCHANGED", "PREVIEW") else "❌"
            )

        self.console.print(table)
        self.console.print(Panel(
            f"[bold white]Summary Report[/bold white]\n"
            f"════════════════════════════════════════\n"
            f"Operations:      {summary['total_operations']}\n"
            f"Changed:         [green]{summary['changed']}[/green]\n"
            f"Written:         {summary['written_to_disk']}\n"
            f"Backups Created: {summary['backups_created']}",
            border_style="dim"
        ))
        if dry_run:
            self.console.print("\n[bold cyan]Dry Run Mode:[/bold cyan] No files were modified.")
