"""Gallery image query for Folio.

The gallery layout shows every image of one folder under the project's
``images/`` directory, in filename order. Dimensions are read with Pillow
so templates can reserve space for each image.

Key classes:
- GalleryImage: One image of a gallery.
- ImageQuery: Lists gallery images from the images directory.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path

from PIL import Image

from .utils import extract_number_from_name

IMAGES_URL_PREFIX = "/assets/images"


@dataclass(frozen=True)
class GalleryImage:
    """An image shown by the gallery layout.

    Attributes:
        path: Source file.
        url: URL path the image is served from.
        width: Width in pixels, or None if it could not be read.
        height: Height in pixels, or None if it could not be read.
    """

    path: Path
    url: str
    width: int | None = None
    height: int | None = None

    @property
    def alt(self) -> str:
        return self.path.stem.replace("-", " ").replace("_", " ")


def _image_sort_key(path: Path) -> tuple:
    number = extract_number_from_name(path.stem)
    return (number is None, number or 0, path.name.lower())


class ImageQuery:
    """Lists the images of a gallery folder.

    Attributes:
        images_dir: Root directory holding one folder per gallery.
        extensions: Accepted file extensions, without the dot.
    """

    def __init__(self, images_dir: Path, extensions: Iterable[str] = ("png",)):
        self.images_dir = images_dir
        self.extensions = tuple(ext.lower().lstrip(".") for ext in extensions)

    def images(self, gallery: str) -> list[GalleryImage]:
        """List the images of ``gallery`` in display order.

        Args:
            gallery: Folder name under the images directory.

        Returns:
            Ordered images; empty if the folder does not exist.
        """
        folder = self.images_dir / gallery
        if not folder.is_dir():
            return []
        files = [
            path
            for path in folder.iterdir()
            if path.is_file() and path.suffix.lower().lstrip(".") in self.extensions
        ]
        return [self._describe(path, gallery) for path in sorted(files, key=_image_sort_key)]

    def _describe(self, path: Path, gallery: str) -> GalleryImage:
        width = height = None
        try:
            with Image.open(path) as img:
                width, height = img.size
        except OSError:
            print(f"Could not read image size of {path}")
        return GalleryImage(
            path=path,
            url=f"{IMAGES_URL_PREFIX}/{gallery}/{path.name}",
            width=width,
            height=height,
        )
