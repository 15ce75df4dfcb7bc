"""
JSON report renderer.
"""

from __future__ import annotations

import json

from docref.renderers.base import BaseRenderer


class JsonRenderer(BaseRenderer):
    """Render ``ValidationReport.to_dict()`` as indented JSON.

    The output is stable for a given corpus: issues are sorted and keys
    are emitted in a fixed order, so two runs can be diffed.
    """

    format_name = "json"

    def render(self) -> str:
        return json.dumps(self.report.to_dict(self.fail_on), indent=2) + "\n"
