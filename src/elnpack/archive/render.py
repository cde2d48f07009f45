"""Markdown to sanitized HTML for the experiment body."""

from __future__ import annotations

import xml.etree.ElementTree as etree

import markdown
import nh3
from markdown.extensions import Extension
from markdown.inlinepatterns import InlineProcessor, SimpleTagInlineProcessor
from markdown.util import AtomicString

from elnpack.state.models import BodyFormat

MATH_CLASSES = frozenset({"math", "math-inline", "math-display"})

_STRIKE_PATTERN = r"(~{2})(.+?)~{2}"
_DISPLAY_MATH_PATTERN = r"\$\$(.+?)\$\$"
_INLINE_MATH_PATTERN = r"(?<![\\$])\$(?!\s)([^$\n]+?)(?<!\s)\$(?!\d)"


class _MathInlineProcessor(InlineProcessor):
    def __init__(self, pattern: str, md: markdown.Markdown, display: bool) -> None:
        super().__init__(pattern, md)
        self._display = display

    def handleMatch(self, m, data):  # type: ignore[override]
        element = etree.Element("span")
        element.set("class", "math math-display" if self._display else "math math-inline")
        element.text = AtomicString(m.group(1))
        return element, m.start(0), m.end(0)


class _StrikethroughExtension(Extension):
    def extendMarkdown(self, md: markdown.Markdown) -> None:
        md.inlinePatterns.register(SimpleTagInlineProcessor(_STRIKE_PATTERN, "del"), "del", 40)


class _MathExtension(Extension):
    def extendMarkdown(self, md: markdown.Markdown) -> None:
        md.inlinePatterns.register(
            _MathInlineProcessor(_DISPLAY_MATH_PATTERN, md, display=True), "math_display", 186
        )
        md.inlinePatterns.register(
            _MathInlineProcessor(_INLINE_MATH_PATTERN, md, display=False), "math_inline", 185
        )


def markdown_to_html(body: str, render_math: bool = False) -> str:
    """Render markdown with footnotes, tables and strikethrough, then sanitize it.

    Args:
        body: Markdown source.
        render_math: Keep ``$...$`` and ``$$...$$`` spans as ``span.math``
            elements so downstream renderers can typeset them.

    Returns:
        str: HTML with scripts, event handlers and unknown tags removed.
    """
    extensions: list[object] = ["footnotes", "tables", _StrikethroughExtension()]
    if render_math:
        extensions.append(_MathExtension())
    rendered = markdown.markdown(body, extensions=extensions, output_format="html")
    allowed_classes = {"span": set(MATH_CLASSES)} if render_math else None
    return nh3.clean(rendered, allowed_classes=allowed_classes)


def render_body(body: str, body_format: BodyFormat, render_math: bool = False) -> tuple[str, str]:
    """Return the stored body text and its ``encodingFormat``."""
    if body_format == BodyFormat.MARKDOWN:
        return body, "text/markdown"
    return markdown_to_html(body, render_math), "text/html"


__all__ = ["MATH_CLASSES", "markdown_to_html", "render_body"]
