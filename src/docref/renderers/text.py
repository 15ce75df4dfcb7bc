"""
Terminal report renderer.

Uses rich for the issue table and summary. ``print_to`` writes with colour
to a live console; ``render`` returns plain text for ``--output`` files.
"""

from __future__ import annotations

import io

from rich.console import Console
from rich.table import Table
from rich.text import Text

from docref.renderers.base import BaseRenderer
from docref.report import Severity

SEVERITY_STYLES = {
    Severity.ERROR: "bold red",
    Severity.WARNING: "yellow",
    Severity.INFO: "cyan",
}


class TextRenderer(BaseRenderer):
    """Render a report as a rich table followed by a summary line."""

    format_name = "text"
    width = 120

    def render(self) -> str:
        buffer = io.StringIO()
        console = Console(file=buffer, width=self.width, color_system=None, force_terminal=False)
        self.print_to(console)
        return buffer.getvalue()

    def print_to(self, console: Console) -> None:
        """Print the issue table and summary to ``console``."""
        if self.report.issues:
            console.print(self._issue_table())
        self.print_summary(console)

    def print_summary(self, console: Console) -> None:
        console.print(self._summary())

    def _issue_table(self) -> Table:
        table = Table(title="docref issues", show_lines=False)
        table.add_column("Location", style="bold", no_wrap=True)
        table.add_column("Severity")
        table.add_column("Code", style="dim")
        table.add_column("Message")

        for issue in self.report.issues:
            message = issue.message
            if issue.related:
                message += "\n  see: " + ", ".join(issue.related)
            # Text cells: messages quote markup that rich would otherwise parse
            table.add_row(
                Text(issue.location),
                Text(issue.severity.value, style=SEVERITY_STYLES[issue.severity]),
                Text(issue.code),
                Text(message),
            )
        return table

    def _summary(self) -> Text:
        counts = self.report.counts()
        documents = self.report.stats.get("documents", len(self.report.documents))
        passed = self.report.passed(self.fail_on)

        summary = Text()
        summary.append("PASSED" if passed else "FAILED", style="bold green" if passed else "bold red")
        summary.append(
            f"  {documents} documents, "
            f"{counts['error']} errors, {counts['warning']} warnings, {counts['info']} info"
            f" (fail on {self.fail_on.value})"
        )
        return summary
