"""Markdown rendering for Folio posts.

Post bodies are Markdown. They are converted to HTML with mistune, fenced
code blocks with a language are highlighted with Pygments, headings get
anchor ids and relative image paths are pointed at the assets folder.

Key classes:
- MarkdownBody: RenderUnit for a Markdown post body.
- StaticBody: RenderUnit for HTML that is already rendered.
"""

from __future__ import annotations

import re
from pathlib import Path

import mistune
from pygments import highlight
from pygments.formatters import HtmlFormatter
from pygments.lexers import get_lexer_by_name
from pygments.util import ClassNotFound


def _generate_heading_id(text: str) -> str:
    """Generate a URL-friendly ID from heading text."""
    slug = text.lower().strip()
    slug = re.sub(r"[^\w\s-]", "", slug)
    slug = re.sub(r"[-\s]+", "-", slug)
    return slug.strip("-")


def _rewrite_image_path(src: str, folder: str) -> str:
    """Rewrite relative image sources to point into the assets directory.

    Args:
        src: Original image source.
        folder: Image folder the post's relative images live in.

    Returns:
        Rewritten image source path.
    """
    if src.startswith(("http://", "https://", "//", "/", "data:")):
        return src
    prefix = Path(folder) if folder else Path()
    normalized = (prefix / src).as_posix()
    return f"/assets/images/{normalized}"


class _HighlightRenderer(mistune.HTMLRenderer):
    """Mistune renderer with heading anchors, image rewriting and Pygments.

    Attributes:
        folder: Image folder for relative image paths.
    """

    def __init__(self, folder: str = ""):
        super().__init__(escape=False)
        self.folder = folder
        self._heading_id_counts: dict[str, int] = {}

    def heading(self, text: str, level: int, **attrs) -> str:
        base_id = _generate_heading_id(text)
        if base_id in self._heading_id_counts:
            self._heading_id_counts[base_id] += 1
            heading_id = f"{base_id}-{self._heading_id_counts[base_id]}"
        else:
            self._heading_id_counts[base_id] = 0
            heading_id = base_id
        return f'<h{level} id="{heading_id}">{text}</h{level}>\n'

    def image(self, text: str, url: str | None = None, title: str | None = None):
        src = _rewrite_image_path(url or "", self.folder)
        return super().image(text, src, title)

    def block_code(self, code: str, info: str | None = None) -> str:
        """Render a code block, highlighted when the language is known."""
        if info:
            lang = info.split()[0]
            try:
                lexer = get_lexer_by_name(lang, stripall=True)
            except ClassNotFound:
                lexer = None
            if lexer is not None:
                formatter = HtmlFormatter(nowrap=False, cssclass="highlight")
                return highlight(code, lexer, formatter)
        escaped = code.replace("&", "&amp;").replace("<", "&lt;").replace(">", "&gt;")
        lang_class = f' class="language-{info.split()[0]}"' if info else ""
        return f"<pre><code{lang_class}>{escaped}</code></pre>\n"


def render_markdown(source: str, folder: str = "") -> str:
    """Render Markdown source to HTML.

    Args:
        source: Markdown text.
        folder: Image folder for relative image paths.

    Returns:
        Rendered HTML.
    """
    markdown = mistune.create_markdown(
        renderer=_HighlightRenderer(folder),
        plugins=["strikethrough", "footnotes", "table", "url"],
    )
    return markdown(source)


def pygments_css() -> str:
    """Return Pygments CSS styles for the .highlight class."""
    return HtmlFormatter().get_style_defs(".highlight")


class MarkdownBody:
    """Render unit for a Markdown post body.

    The HTML is produced on first use and cached.
    """

    def __init__(self, source: str, folder: str = ""):
        self.source = source
        self.folder = folder
        self._html: str | None = None

    def render(self) -> str:
        if self._html is None:
            self._html = render_markdown(self.source, self.folder)
        return self._html

    def __repr__(self) -> str:  # pragma: no cover - for debugging
        return f"MarkdownBody({len(self.source)} chars)"


class StaticBody:
    """Render unit wrapping HTML that is already rendered."""

    def __init__(self, html: str):
        self.html = html

    def render(self) -> str:
        return self.html
