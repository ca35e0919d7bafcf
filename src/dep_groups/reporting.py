"""
Console output for dependency groups and operation results.

Provides color-coded console output using Rich library.
"""

from typing import Optional

from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from .groups import GroupRegistry
from .operations import ExportResult, LintResult


class GroupReporter:
    """Formats dependency groups and operation results for the terminal."""

    def __init__(self, console: Optional[Console] = None):
        self.console = console or Console()

    def print_groups(self, registry: GroupRegistry, manifest_path: str) -> None:
        """
        Print every group with its dependencies in declaration order.

        Args:
            registry: Groups of the loaded manifest
            manifest_path: Path shown in the header
        """
        self.console.print(
            Panel(
                f"📦 Dependency groups: {manifest_path}",
                title="[bold blue]dep-groups[/bold blue]",
                border_style="blue",
            )
        )

        table = Table(box=box.ROUNDED, title_style="bold cyan")
        table.add_column("Group", style="bold")
        table.add_column("Dependency")
        table.add_column("Requirement", style="dim")

        for group in registry:
            label = f"[green]{group.name}[/green]" if group.is_required else group.name
            if not group.dependencies:
                table.add_row(label, "[dim](empty)[/dim]", "")
                continue
            for index, dep in enumerate(group.dependencies):
                table.add_row(label if index == 0 else "", dep.name, dep.requirement)

        self.console.print(table)

    def print_export_result(self, result: ExportResult) -> None:
        groups = ", ".join(result.groups) if result.groups else "none"
        self.console.print(
            f"✅ Exported {len(result.dependencies)} dependencies to {result.path}",
            style="green",
        )
        self.console.print(f"   Groups: {groups}", style="dim")

    def print_lint_result(self, result: LintResult) -> None:
        if result.manifest_written:
            self.console.print("📝 Recorded lint tools in the manifest", style="blue")
        if result.exit_code == 0:
            self.console.print("✅ Lint passed", style="green")
        else:
            self.console.print(f"❌ Lint failed with exit status {result.exit_code}", style="red")
