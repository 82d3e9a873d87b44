"""Request routing for Folio.

The router is the boundary between navigation paths and the registry.
It resolves post identifiers and turns unknown ones into a not-found
view instead of letting the lookup error escape.

Key classes:
- Response: Status and HTML of a rendered view.
- SiteRouter: Maps paths to rendered views.
"""

from __future__ import annotations

from dataclasses import dataclass

from .entries import Entry, EntryRegistry, PostNotFoundError
from .templates import TemplateEngine
from .utils import normalize_url


@dataclass(frozen=True)
class Response:
    """A rendered view.

    Attributes:
        status: HTTP status code.
        body: Rendered HTML.
        entry: The post that was rendered, if any.
    """

    status: int
    body: str
    entry: Entry | None = None
    content_type: str = "text/html; charset=utf-8"


class SiteRouter:
    """Maps navigation paths to rendered views.

    Routes:
    - ``/``: the listing page.
    - a post's canonical url: that post.
    - ``{blog_prefix}/<id>``: the post registered under ``id``, or the
      not-found view with status 404.

    Attributes:
        registry: Registry of posts.
        engine: Template engine rendering the views.
        blog_prefix: URL prefix handled by identifier lookup.
    """

    def __init__(
        self,
        registry: EntryRegistry,
        engine: TemplateEngine,
        blog_prefix: str = "/blog",
    ):
        self.registry = registry
        self.engine = engine
        self.blog_prefix = normalize_url(blog_prefix)

    def dispatch(self, path: str) -> Response | None:
        """Render the view for a path.

        Args:
            path: URL path of the request (query string already removed).

        Returns:
            The rendered view, or None if the path is not a page route
            (for example a static asset).
        """
        url = normalize_url(path.removesuffix("index.html"))
        if url == "/":
            return Response(200, self.engine.render_index(self.registry))
        entry = self.registry.find_by_url(url)
        if entry is not None:
            return self._render(entry)
        prefix = self.blog_prefix.rstrip("/") + "/"
        if url.startswith(prefix):
            post_id = url[len(prefix) :]
            if "/" not in post_id:
                return self.render_post(post_id)
        return None

    def render_post(self, post_id: str) -> Response:
        """Resolve a post by identifier and render it.

        An unknown identifier yields the not-found view with status 404.
        """
        try:
            entry = self.registry.resolve(post_id)
        except PostNotFoundError as exc:
            return self.not_found(exc.post_id)
        return self._render(entry)

    def not_found(self, post_id: str | None = None) -> Response:
        return Response(404, self.engine.render_not_found(post_id))

    def _render(self, entry: Entry) -> Response:
        return Response(200, self.engine.render_entry(entry), entry=entry)
