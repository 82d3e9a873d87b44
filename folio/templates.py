"""Template rendering engine for Folio.

This module uses Jinja2 to render the listing page, posts and the
not-found page. Templates in the project's ``_layouts/`` folder override
the bundled ones with the same name.

Key class:
- TemplateEngine: Renders views and provides context to templates.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from jinja2 import Environment, FileSystemLoader, select_autoescape
from markupsafe import Markup

from .entries import Entry, EntryRegistry
from .layouts import LayoutDispatcher, LayoutKind
from .protocols import ImageSource
from .renderers import pygments_css
from .utils import format_display_date

BUILTIN_LAYOUTS_DIR = Path(__file__).parent / "_layouts"

__all__ = ["BUILTIN_LAYOUTS_DIR", "TemplateEngine"]


class TemplateEngine:
    """Template rendering engine using Jinja2.

    Attributes:
        data: Global site data (title, description, author, links).
        image_source: Asset query used by the gallery layout.
        dispatcher: Chooses the template of each post.
        env: Jinja2 environment.
    """

    def __init__(
        self,
        data: dict[str, Any],
        image_source: ImageSource,
        layouts_dir: Path | None = None,
        dispatcher: LayoutDispatcher | None = None,
        root_url: str = "",
    ):
        """Initialize the template engine.

        Args:
            data: Global site data.
            image_source: Asset query for gallery images.
            layouts_dir: Optional project folder with template overrides.
            dispatcher: Optional custom layout dispatcher.
            root_url: Optional base URL for links.
        """
        self.data = data
        self.image_source = image_source
        self.dispatcher = dispatcher or LayoutDispatcher()
        self.root_url = root_url.rstrip("/")
        search_path = [BUILTIN_LAYOUTS_DIR]
        if layouts_dir is not None and layouts_dir.is_dir():
            search_path.insert(0, layouts_dir)
        self.env = Environment(
            loader=FileSystemLoader(search_path),
            autoescape=select_autoescape(["html", "xml", "jinja"]),
        )
        self._install_globals()

    def _install_globals(self) -> None:
        self.env.globals["data"] = self.data
        self.env.globals["url_for"] = self._url_for
        self.env.globals["pygments_css"] = pygments_css
        self.env.filters["display_date"] = format_display_date

    def _url_for(self, path: str) -> str:
        """Generate a URL for a path, applying root_url if configured."""
        if path.startswith(("http://", "https://", "//")):
            return path
        path = path if path.startswith("/") else f"/{path}"
        return f"{self.root_url}{path}"

    def render_index(self, registry: EntryRegistry) -> str:
        """Render the listing page, newest post first."""
        template = self.env.get_template("index.html.jinja")
        return template.render(entries=registry.entries(), posts=registry.list_all())

    def render_entry(self, entry: Entry) -> str:
        """Render a post with the template of its layout.

        Args:
            entry: The resolved post.

        Returns:
            Rendered HTML page.
        """
        kind = self.dispatcher.layout_for(entry)
        template = self.env.get_template(self.dispatcher.template_for(kind))
        context: dict[str, Any] = {"entry": entry, "metadata": entry.metadata}
        if kind is LayoutKind.GALLERY:
            context["images"] = self.image_source.images(entry.gallery or entry.id)
        else:
            context["body"] = Markup(entry.render_unit.render())
        return template.render(**context)

    def render_not_found(self, post_id: str | None = None) -> str:
        """Render the page shown for unknown posts and paths."""
        template = self.env.get_template("not_found.html.jinja")
        return template.render(post_id=post_id)

    def render_string(self, template: str, context: dict[str, Any]) -> str:
        tmpl = self.env.from_string(template)
        return tmpl.render(**context)
