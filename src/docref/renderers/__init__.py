"""
Renderers module for validation reports.

Each renderer takes a ``ValidationReport`` and produces one output format.
"""

from __future__ import annotations

from docref.errors import InvalidConfigError
from docref.renderers.base import BaseRenderer
from docref.renderers.json_renderer import JsonRenderer
from docref.renderers.markdown import MarkdownRenderer
from docref.renderers.text import TextRenderer

RENDERERS: dict[str, type[BaseRenderer]] = {
    TextRenderer.format_name: TextRenderer,
    JsonRenderer.format_name: JsonRenderer,
    MarkdownRenderer.format_name: MarkdownRenderer,
}


def get_renderer(format_name: str) -> type[BaseRenderer]:
    """Look up a renderer class by format name.

    Raises:
        InvalidConfigError: Unknown format
    """
    try:
        return RENDERERS[format_name.lower()]
    except KeyError:
        raise InvalidConfigError(
            "format", format_name, f"Unknown report format {format_name!r}; choose from {sorted(RENDERERS)}"
        ) from None


__all__ = [
    "BaseRenderer",
    "JsonRenderer",
    "MarkdownRenderer",
    "RENDERERS",
    "TextRenderer",
    "get_renderer",
]
