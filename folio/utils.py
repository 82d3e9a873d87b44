"""Utility functions for Folio.

This module contains small helpers used throughout the Folio codebase:
string processing, display date parsing, path handling and directory cleanup.

Key functions:
    slugify: Convert filenames and titles to URL slugs.
    titleize: Convert filenames to human-readable titles.
    parse_display_date: Parse a free-form display date into a datetime.
    format_display_date: Render a date the way post headers show it.
    extract_date_from_name: Extract date from filename prefix.
    ensure_clean_dir: Ensure a directory exists and is empty.
"""

from __future__ import annotations

import re
import shutil
from datetime import date, datetime
from pathlib import Path

# Month-first formats are tried before day-first ones: "2-1-2020" is February 1st.
DISPLAY_DATE_FORMATS = (
    "%Y-%m-%d",
    "%m-%d-%Y",
    "%m/%d/%Y",
    "%d-%m-%Y",
    "%B %d, %Y",
    "%b %d, %Y",
    "%d %B %Y",
)


def slugify(name: str) -> str:
    """Convert a filename stem or title to a slug, dropping any date prefix.

    Args:
        name: Filename stem or free text.

    Returns:
        URL-friendly slug.

    Examples:
        >>> slugify("2024-01-15-Happy New Year")
        'happy-new-year'
    """
    cleaned = name
    if "-" in cleaned:
        parts = cleaned.split("-")
        if len(parts) >= 4 and all(p.isdigit() for p in parts[:3]):
            cleaned = "-".join(parts[3:])
    cleaned = re.sub(r"[^a-zA-Z0-9]+", "-", cleaned)
    cleaned = cleaned.strip("-").lower()
    return cleaned or "index"


def titleize(filename: str) -> str:
    """Convert a filename to a human-readable title.

    Removes date prefixes (YYYY-MM-DD), replaces hyphens and underscores
    with spaces, and capitalizes each word.

    Examples:
        >>> titleize("2024-01-15-hello-world.md")
        'Hello World'
    """
    base = Path(filename).stem
    if "-" in base:
        parts = base.split("-")
        if len(parts) >= 4 and all(p.isdigit() for p in parts[:3]):
            base = "-".join(parts[3:])
    words = re.split(r"[\s\-_]+", base)
    return " ".join(word.capitalize() for word in words if word) or "Untitled"


def extract_date_from_name(name: str) -> datetime | None:
    """Extract a date from a filename with YYYY-MM-DD prefix.

    Args:
        name: Filename stem (without extension).

    Returns:
        datetime object if a valid date prefix is found, None otherwise.
    """
    parts = name.split("-")
    if len(parts) >= 3 and all(p.isdigit() for p in parts[:3]):
        try:
            return datetime(int(parts[0]), int(parts[1]), int(parts[2]))
        except ValueError:
            return None
    return None


def parse_display_date(value: object) -> datetime | None:
    """Parse a display date as authors write it in frontmatter.

    Accepts datetime and date objects (YAML turns ``2020-01-01`` into a date)
    and strings in any of ``DISPLAY_DATE_FORMATS``.

    Args:
        value: Raw frontmatter value.

    Returns:
        Parsed datetime, or None when the value is not a recognizable date.

    Examples:
        >>> parse_display_date("2-1-2020")
        datetime.datetime(2020, 2, 1, 0, 0)
    """
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if not isinstance(value, str):
        return None
    text = value.strip()
    for fmt in DISPLAY_DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue
    return None


def format_display_date(value: object) -> str:
    """Format a date as ``Month DD, YYYY``.

    Values that cannot be parsed are returned as text unchanged.
    """
    parsed = parse_display_date(value)
    if parsed is None:
        return "" if value is None else str(value)
    return parsed.strftime("%B %d, %Y")


def date_to_text(value: object) -> str:
    """Turn a frontmatter date value into the display string stored on entries.

    Strings are kept as authored. YAML parses unquoted ISO dates into date
    objects; those are written back in ISO form.
    """
    if isinstance(value, datetime):
        value = value.date()
    if isinstance(value, date):
        return value.isoformat()
    return "" if value is None else str(value).strip()


def first_paragraph(text: str, limit: int = 160) -> str:
    """Extract and clean the first paragraph from text.

    Skips headings, strips HTML tags, collapses whitespace and truncates
    to the specified limit.
    """
    paragraphs = [p.strip() for p in text.split("\n\n") if p.strip()]
    for para in paragraphs:
        if para.startswith(("#", "![", "```", "---")):
            continue
        para = re.sub(r"<[^>]+>", "", para)
        collapsed = " ".join(para.split())
        return collapsed[:limit]
    return ""


def normalize_url(url: str) -> str:
    """Normalize a URL path for comparison: leading slash, no trailing slash."""
    path = "/" + url.strip().strip("/")
    return path


def last_segment(url: str) -> str:
    """Return the final path segment of a URL path."""
    return normalize_url(url).rsplit("/", 1)[-1]


def extract_number_from_name(name: str) -> int | None:
    """Extract a leading number from a filename for sorting.

    Handles filenames like "01-intro.png" or "2-sunset.png".
    """
    parts = name.split("-")
    if parts and parts[0].isdigit():
        return int(parts[0])
    return None


def ensure_clean_dir(path: Path) -> None:
    """Ensure a directory exists and is empty.

    If the directory exists, removes all contents. Creates the
    directory if it doesn't exist.
    """
    if path.exists():
        shutil.rmtree(str(path), ignore_errors=True)
        if path.exists():
            # Fallback for stubborn directories
            for item in path.rglob("*"):
                if item.is_file():
                    item.unlink()
            for item in sorted(
                [p for p in path.rglob("*") if p.is_dir()], reverse=True
            ):
                item.rmdir()
            path.rmdir()
    path.mkdir(parents=True, exist_ok=True)


def is_markdown(path: Path) -> bool:
    """Check if a path is a Markdown file."""
    return path.suffix.lower() == ".md"
