"""Tests for markdown body rendering."""

from elnpack.archive import markdown_to_html, render_body
from elnpack.state import BodyFormat


def test_markdown_extensions_are_enabled() -> None:
    html = markdown_to_html(
        "**bold** and ~~struck~~\n\n| a | b |\n|---|---|\n| 1 | 2 |\n\nClaim[^1]\n\n[^1]: Source"
    )

    assert "<strong>bold</strong>" in html
    assert "<del>struck</del>" in html
    assert "<table>" in html
    assert "<sup" in html
    assert "Source" in html


def test_unsafe_markup_is_removed() -> None:
    html = markdown_to_html('Hi <script>alert(1)</script><img src="x.png" onerror="steal()">')

    assert "<script" not in html
    assert "alert(1)" not in html
    assert "onerror" not in html


def test_math_spans_only_when_enabled() -> None:
    source = "Energy $E=mc^2$ and $$\\int_0^1 x\\,dx$$"

    plain = markdown_to_html(source)
    rendered = markdown_to_html(source, render_math=True)

    assert "math" not in plain
    assert '<span class="math math-inline">E=mc^2</span>' in rendered
    assert 'class="math math-display"' in rendered


def test_render_body_selects_encoding_format() -> None:
    assert render_body("# Title", BodyFormat.MARKDOWN) == ("# Title", "text/markdown")

    text, encoding = render_body("# Title", BodyFormat.HTML)
    assert encoding == "text/html"
    assert text.startswith("<h1>Title</h1>")
