"""
Markdown report renderer.

Produces a report suitable for a CI job summary or a pull-request comment.
"""

from __future__ import annotations

from docref.renderers.base import BaseRenderer


class MarkdownRenderer(BaseRenderer):
    """Render a report as Markdown from ``report.md.j2``.

    Features:
        - Summary table of issue counts per severity and per code
        - One section per document, issues in line order
        - Suggestions and related locations inline

    Tags:
        - renderer
        - markdown
    """

    format_name = "markdown"
    template_name = "report.md.j2"

    def render(self) -> str:
        template = self._get_template()
        return template.render(documents=self._group_by_document(), **self._get_metadata())
