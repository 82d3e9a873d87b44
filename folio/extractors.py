"""Metadata extractors for Folio.

Each extractor pulls one kind of metadata out of a post source file.
The composite runs them in order and merges their results, so later
extractors can rely on (and override) what earlier ones found.

Key classes:
- FrontmatterExtractor: Splits YAML frontmatter from the Markdown body.
- TitleExtractor: Title from frontmatter, first heading or filename.
- DateExtractor: Date from frontmatter, filename prefix or file mtime.
- DescriptionExtractor: First paragraph of the body.
"""

from __future__ import annotations

import re
from datetime import datetime
from pathlib import Path
from typing import Any

import yaml

from .utils import date_to_text, extract_date_from_name, first_paragraph, titleize

FRONTMATTER_RE = re.compile(r"^---\s*\n(.*?)\n---\s*\n?", re.DOTALL)


class FrontmatterError(ValueError):
    """Error raised when a frontmatter block is not a valid YAML mapping."""


def extract_frontmatter(text: str) -> tuple[dict[str, Any], str]:
    """Extract YAML frontmatter from content.

    Args:
        text: Raw file content.

    Returns:
        Tuple of (frontmatter dict, remaining content).

    Raises:
        FrontmatterError: If the block between the ``---`` fences is not
            valid YAML or does not hold a mapping.
    """
    match = FRONTMATTER_RE.match(text)
    if not match:
        return {}, text
    try:
        data = yaml.safe_load(match.group(1))
    except yaml.YAMLError as exc:
        raise FrontmatterError(f"Invalid frontmatter YAML: {exc}") from exc
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise FrontmatterError(
            f"Frontmatter must be a mapping, got {type(data).__name__}"
        )
    return data, text[match.end() :]


class FrontmatterExtractor:
    """Extracts YAML frontmatter from content."""

    def extract(self, content: str, path: Path, found: dict[str, Any]) -> dict[str, Any]:
        frontmatter, body = extract_frontmatter(content)
        return {"frontmatter": frontmatter, "body": body}


class TitleExtractor:
    """Extracts the post title.

    Frontmatter ``title`` wins; otherwise the first level-1 heading of the
    body, and finally the titleized filename.
    """

    def extract(self, content: str, path: Path, found: dict[str, Any]) -> dict[str, Any]:
        title = found.get("frontmatter", {}).get("title")
        if title:
            return {"title": str(title).strip()}
        for line in found.get("body", content).splitlines():
            stripped = line.strip()
            if stripped.startswith("# "):
                return {"title": stripped.lstrip("# ").strip()}
        return {"title": titleize(path.name)}


class DateExtractor:
    """Extracts the display date.

    Frontmatter ``date`` is kept as authored. Without it, a YYYY-MM-DD
    filename prefix is used, falling back to the file modification time.
    """

    def extract(self, content: str, path: Path, found: dict[str, Any]) -> dict[str, Any]:
        raw = found.get("frontmatter", {}).get("date")
        if raw is not None and date_to_text(raw):
            return {"date": date_to_text(raw)}
        date = extract_date_from_name(path.stem)
        if date is None:
            date = datetime.fromtimestamp(path.stat().st_mtime)
        return {"date": date_to_text(date)}


class DescriptionExtractor:
    """Extracts a short description from the first body paragraph."""

    def extract(self, content: str, path: Path, found: dict[str, Any]) -> dict[str, Any]:
        description = found.get("frontmatter", {}).get("description")
        if description:
            return {"description": str(description).strip()}
        return {"description": first_paragraph(found.get("body", content))}


class CompositeMetadataExtractor:
    """Combines multiple metadata extractors.

    Extractors run in registration order; each receives the metadata
    gathered so far and its result is merged on top.
    """

    def __init__(self, extractors: list | None = None):
        if extractors is None:
            self._extractors = [
                FrontmatterExtractor(),
                TitleExtractor(),
                DateExtractor(),
                DescriptionExtractor(),
            ]
        else:
            self._extractors = list(extractors)

    def add_extractor(self, extractor) -> None:
        self._extractors.append(extractor)

    def extract(self, content: str, path: Path) -> dict[str, Any]:
        """Extract all metadata from content.

        Args:
            content: Source content.
            path: Path to the source file.

        Returns:
            Dictionary with all extracted metadata.
        """
        result: dict[str, Any] = {}
        for extractor in self._extractors:
            result.update(extractor.extract(content, path, result))
        return result


# Default composite extractor instance
default_metadata_extractor = CompositeMetadataExtractor()
