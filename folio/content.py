"""Content loading for Folio.

This module turns the Markdown files of the content directory into
Entry objects and collects them into an EntryRegistry.

Key classes:
- FileContentLoader: Discovers post files.
- EntryBuilder: Builds one Entry from one post file.
- ContentError: Raised for invalid post frontmatter.

Key function:
- load_registry: Load every post once and build the registry.
"""

from __future__ import annotations

from collections.abc import Iterable
from pathlib import Path
from typing import Any

from .entries import Entry, EntryMetadata, EntryRegistry
from .extractors import (
    CompositeMetadataExtractor,
    FrontmatterError,
    default_metadata_extractor,
)
from .layouts import GALLERY_TITLES, LayoutDispatcher, LayoutKind
from .renderers import MarkdownBody
from .utils import is_markdown, last_segment, normalize_url, slugify

DEFAULT_BLOG_PREFIX = "/blog"


class ContentError(Exception):
    """Error in a post source file.

    Attributes:
        source_path: Path to the offending file.
        message: Human-readable error message.
    """

    def __init__(self, source_path: Path, message: str):
        self.source_path = source_path
        self.message = message
        super().__init__(f"{source_path}: {message}")


class FileContentLoader:
    """Discovers post files in a content directory.

    Files and folders whose name starts with ``_`` are drafts or internal
    and are skipped unless drafts are requested.

    Attributes:
        content_dir: Directory containing the Markdown posts.
    """

    def __init__(self, content_dir: Path):
        self.content_dir = content_dir

    def iter_files(self, include_drafts: bool = False) -> list[Path]:
        """List post files in a stable order.

        Args:
            include_drafts: Whether to include ``_``-prefixed draft files.

        Returns:
            Sorted list of Markdown file paths.
        """
        if not self.content_dir.exists():
            return []
        files: list[Path] = []
        for path in sorted(self.content_dir.rglob("*")):
            if path.is_dir() or not is_markdown(path):
                continue
            rel = path.relative_to(self.content_dir)
            if any(part.startswith("_") for part in rel.parts[:-1]):
                continue
            if rel.name.startswith("_") and not include_drafts:
                continue
            files.append(path)
        return files


class EntryBuilder:
    """Builds Entry objects from post files.

    The identifier is the last segment of the frontmatter ``path`` (an
    explicit ``slug`` must agree with it), else the ``slug``, else the
    slugified filename. The layout is taken from frontmatter ``layout``
    or, when absent, decided once here from the title.

    Attributes:
        blog_prefix: URL prefix for posts without a frontmatter path.
        dispatcher: Layout dispatcher applying the title policy.
        metadata_extractor: Composite metadata extractor.
    """

    def __init__(
        self,
        blog_prefix: str = DEFAULT_BLOG_PREFIX,
        dispatcher: LayoutDispatcher | None = None,
        metadata_extractor: CompositeMetadataExtractor | None = None,
    ):
        self.blog_prefix = normalize_url(blog_prefix)
        self.dispatcher = dispatcher or LayoutDispatcher()
        self.metadata_extractor = metadata_extractor or default_metadata_extractor

    def build(self, path: Path) -> Entry:
        """Build an Entry from a Markdown post.

        Args:
            path: Path to the post file.

        Returns:
            The Entry.

        Raises:
            ContentError: If the frontmatter is malformed or inconsistent.
        """
        raw = path.read_text(encoding="utf-8")
        try:
            metadata = self.metadata_extractor.extract(raw, path)
        except FrontmatterError as exc:
            raise ContentError(path, str(exc)) from exc
        frontmatter: dict[str, Any] = metadata.get("frontmatter", {})
        title = metadata["title"]

        post_id, url = self._identify(path, frontmatter)
        layout = self._layout(path, frontmatter, title)
        gallery = frontmatter.get("gallery")
        if gallery is None and layout is LayoutKind.GALLERY:
            gallery = slugify(title)

        return Entry(
            id=post_id,
            metadata=EntryMetadata(name=title, date=metadata["date"], url=url),
            render_unit=MarkdownBody(metadata.get("body", raw), folder=gallery or post_id),
            layout=layout,
            gallery=str(gallery) if gallery is not None else None,
            description=metadata.get("description", ""),
            source=path,
        )

    def _identify(self, path: Path, frontmatter: dict[str, Any]) -> tuple[str, str]:
        slug = frontmatter.get("slug")
        url_path = frontmatter.get("path")
        if url_path is not None:
            url = normalize_url(str(url_path))
            if url == "/":
                raise ContentError(path, "Frontmatter path cannot be the site root")
            from_path = last_segment(url)
            if slug is not None and str(slug) != from_path:
                raise ContentError(
                    path,
                    f"Frontmatter slug '{slug}' does not match the last segment of path '{url}'",
                )
            return from_path, url
        post_id = str(slug) if slug is not None else slugify(path.stem)
        return post_id, f"{self.blog_prefix.rstrip('/')}/{post_id}"

    def _layout(self, path: Path, frontmatter: dict[str, Any], title: str) -> LayoutKind:
        declared = frontmatter.get("layout")
        if declared is None:
            return self.dispatcher.select_layout(title)
        try:
            return LayoutKind.parse(declared)
        except ValueError as exc:
            raise ContentError(path, str(exc)) from exc


def load_entries(
    content_dir: Path,
    builder: EntryBuilder | None = None,
    include_drafts: bool = False,
) -> list[Entry]:
    """Build an Entry for every post file in ``content_dir``."""
    builder = builder or EntryBuilder()
    loader = FileContentLoader(content_dir)
    return [builder.build(path) for path in loader.iter_files(include_drafts)]


def load_registry(
    content_dir: Path,
    blog_prefix: str = DEFAULT_BLOG_PREFIX,
    gallery_titles: Iterable[str] = GALLERY_TITLES,
    include_drafts: bool = False,
) -> EntryRegistry:
    """Load every post once and build the immutable registry.

    Args:
        content_dir: Directory containing the Markdown posts.
        blog_prefix: URL prefix for posts without a frontmatter path.
        gallery_titles: Titles that default to the gallery layout.
        include_drafts: Whether to include draft posts.

    Returns:
        EntryRegistry with one entry per post.

    Raises:
        ContentError: If a post has invalid frontmatter.
        RegistryError: If identifiers collide.
    """
    builder = EntryBuilder(blog_prefix, LayoutDispatcher(gallery_titles))
    return EntryRegistry(load_entries(content_dir, builder, include_drafts))
