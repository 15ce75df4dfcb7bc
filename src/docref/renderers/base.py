"""
Base renderer for validation reports.

Provides template loading and the metadata every report format shares.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from jinja2 import Environment, FileSystemLoader, Template, select_autoescape

from docref.report import Issue, Severity, ValidationReport


class BaseRenderer(ABC):
    """Base class for report renderers.

    Manifesto:
        Renderers turn a ``ValidationReport`` into text. They never run
        checks and never decide pass/fail on their own: the report and the
        ``fail_on`` threshold carry that.

    Architecture:
        ```
        ValidationReport ──► Renderer._get_metadata()
                                   │
                                   ▼
                           Jinja2 Template / rich / json
                                   │
                                   ▼
                              Rendered text
        ```

    Features:
        - Load Jinja2 templates from a configurable directory
        - Group issues by document
        - Shared metadata (root, counts, pass/fail, timestamp)

    Tags:
        - renderer
        - template
        - jinja2
    """

    # Format name used by ``--format``
    format_name: str = ""

    # Template file name (template-based renderers only)
    template_name: str = ""

    def __init__(
        self,
        report: ValidationReport,
        fail_on: Severity = Severity.ERROR,
        template_dir: Path | None = None,
    ):
        """Initialize the renderer.

        Args:
            report: Report to render
            fail_on: Lowest severity that fails the run
            template_dir: Directory containing templates
        """
        self.report = report
        self.fail_on = fail_on

        if template_dir is None:
            template_dir = Path(__file__).parent.parent / "templates"
        self.template_dir = Path(template_dir)

        self.env = Environment(
            loader=FileSystemLoader(str(self.template_dir)),
            autoescape=select_autoescape(["html", "xml"]),
            trim_blocks=True,
            lstrip_blocks=True,
            keep_trailing_newline=True,
        )
        self.env.filters["location"] = _location_filter

    @abstractmethod
    def render(self) -> str:
        """Render the report.

        Returns:
            Rendered report as string
        """

    def _get_template(self, template_name: str | None = None) -> Template:
        return self.env.get_template(template_name or self.template_name)

    def _group_by_document(self) -> dict[str, list[Issue]]:
        """Issues grouped by document, in report order."""
        groups: dict[str, list[Issue]] = {}
        for issue in self.report.issues:
            groups.setdefault(issue.document, []).append(issue)
        return groups

    def _get_metadata(self) -> dict[str, Any]:
        """Common template variables."""
        return {
            "generated_at": datetime.now(timezone.utc),
            "root": self.report.root,
            "passed": self.report.passed(self.fail_on),
            "fail_on": self.fail_on.value,
            "counts": self.report.counts(),
            "by_code": self.report.by_code(),
            "stats": self.report.stats,
            "total_issues": len(self.report.issues),
        }


def _location_filter(issue: Issue) -> str:
    return issue.location
