"""Layout selection for Folio posts.

Every post renders with one of two layouts: the default article view
(title, date and body) or the gallery view (an ordered run of cover-fit
images). The choice is stored on each entry as a ``LayoutKind`` when the
post is loaded, so rendering never has to look at the title text.

Key objects:
- LayoutKind: The closed set of layout variants.
- select_layout: Title policy applied when a post does not declare a layout.
- LayoutDispatcher: Maps entries and layout kinds to templates.
"""

from __future__ import annotations

from collections.abc import Iterable
from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .entries import Entry

GALLERY_TITLES = frozenset({"Binary Objections"})


def gallery_title_set(gallery_titles: Iterable[str] | str) -> frozenset[str]:
    """Normalize configured gallery titles to a set.

    A single title given as a plain string counts as one title, not as a
    sequence of characters.
    """
    if isinstance(gallery_titles, str):
        return frozenset({gallery_titles})
    return frozenset(gallery_titles)


class LayoutKind(str, Enum):
    """Rendering strategy for a post."""

    DEFAULT = "default"
    GALLERY = "gallery"

    @classmethod
    def parse(cls, value: str) -> LayoutKind:
        """Parse a layout name from frontmatter.

        Raises:
            ValueError: If the name is not a known layout.
        """
        normalized = str(value).strip().lower()
        for kind in cls:
            if kind.value == normalized:
                return kind
        choices = ", ".join(kind.value for kind in cls)
        raise ValueError(f"Unknown layout '{value}' (expected one of: {choices})")


def select_layout(
    title: str, gallery_titles: Iterable[str] | str = GALLERY_TITLES
) -> LayoutKind:
    """Choose a layout from a post title.

    Only an exact match against one of the reserved titles selects the
    gallery; everything else gets the default article layout.

    Examples:
        >>> select_layout("Binary Objections")
        <LayoutKind.GALLERY: 'gallery'>
        >>> select_layout("binary objections")
        <LayoutKind.DEFAULT: 'default'>
    """
    if title in gallery_title_set(gallery_titles):
        return LayoutKind.GALLERY
    return LayoutKind.DEFAULT


class LayoutDispatcher:
    """Chooses templates for posts.

    Attributes:
        gallery_titles: Titles that select the gallery layout when a post
            does not declare one.
        templates: Template name per layout kind.
    """

    templates = {
        LayoutKind.DEFAULT: "post.html.jinja",
        LayoutKind.GALLERY: "gallery.html.jinja",
    }

    def __init__(self, gallery_titles: Iterable[str] | str = GALLERY_TITLES):
        self.gallery_titles = gallery_title_set(gallery_titles)

    def select_layout(self, title: str) -> LayoutKind:
        return select_layout(title, self.gallery_titles)

    def layout_for(self, entry: Entry) -> LayoutKind:
        return entry.layout

    def template_for(self, kind: LayoutKind) -> str:
        return self.templates[kind]
