"""Protocol definitions for Folio.

These protocols describe the collaborators the core depends on without
tying it to a concrete implementation: whatever produces a post body, and
whatever lists the images of a gallery. Tests substitute simple fakes.
"""

from __future__ import annotations

from abc import abstractmethod
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from .gallery import GalleryImage


@runtime_checkable
class RenderUnit(Protocol):
    """Opaque handle to the content of one post.

    The registry never looks inside a render unit; templates call
    ``render()`` to obtain the body HTML.
    """

    @abstractmethod
    def render(self) -> str:
        """Return the rendered HTML body."""
        ...


@runtime_checkable
class ImageSource(Protocol):
    """Protocol for the asset query that feeds the Gallery layout."""

    @abstractmethod
    def images(self, gallery: str) -> list[GalleryImage]:
        """List the images of a gallery in display order.

        Args:
            gallery: Name of the gallery folder.

        Returns:
            Ordered list of images, empty when the gallery does not exist.
        """
        ...
