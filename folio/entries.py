"""Entry registry for Folio.

This module holds the data model for blog posts and the immutable registry
that owns them. The registry is built once when the site is loaded and then
handed to whatever needs lookups (router, template engine, CLI); nothing
imports a global table.

Key classes:
- EntryMetadata: Listing fields of a post (title, display date, url).
- Entry: One post: identifier, metadata, render unit and layout.
- EntryRegistry: Read-only mapping from identifier to Entry.
- PostNotFoundError: Raised when an identifier is not registered.
- RegistryError: Raised when entries break the registry invariants.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from types import MappingProxyType

from .layouts import LayoutKind
from .protocols import RenderUnit
from .utils import last_segment, normalize_url, parse_display_date


class PostNotFoundError(KeyError):
    """Error raised when a post identifier is not in the registry.

    Attributes:
        post_id: The identifier that was requested.
    """

    def __init__(self, post_id: str):
        self.post_id = post_id
        super().__init__(post_id)

    def __str__(self) -> str:
        return f"Unknown post identifier: '{self.post_id}'"


class RegistryError(ValueError):
    """Error raised when entries cannot form a valid registry."""


@dataclass(frozen=True)
class EntryMetadata:
    """Fields shown for a post on the listing page.

    Attributes:
        name: Post title.
        date: Display date exactly as authored (e.g. "1-1-2020").
        url: Canonical path of the post.
    """

    name: str
    date: str
    url: str

    @property
    def published(self) -> datetime | None:
        """The display date parsed for sorting, or None if unparseable."""
        return parse_display_date(self.date)


@dataclass(frozen=True)
class Entry:
    """A single blog post.

    Attributes:
        id: Unique URL-safe identifier.
        metadata: Listing metadata.
        render_unit: Handle that renders the post body.
        layout: Layout variant decided when the post was loaded.
        gallery: Image folder shown by the gallery layout.
        description: Short summary used for page descriptions.
        source: File the post was loaded from, if any.
    """

    id: str
    metadata: EntryMetadata
    render_unit: RenderUnit
    layout: LayoutKind = LayoutKind.DEFAULT
    gallery: str | None = None
    description: str = ""
    source: Path | None = None

    @property
    def title(self) -> str:
        return self.metadata.name

    @property
    def url(self) -> str:
        return self.metadata.url


def _listing_key(entry: Entry) -> tuple:
    published = entry.metadata.published
    # Unparseable dates sort after every real date in a newest-first listing.
    return (published is None, -(published or datetime.min).toordinal(), entry.id)


class EntryRegistry(Mapping[str, Entry]):
    """Immutable mapping from post identifier to Entry.

    Construction validates that identifiers are unique and that every
    entry's url ends with its identifier. After that the registry is
    read-only for its whole lifetime.
    """

    def __init__(self, entries: Iterable[Entry] = ()):
        table: dict[str, Entry] = {}
        urls: dict[str, str] = {}
        for entry in entries:
            if entry.id in table:
                raise RegistryError(f"Duplicate post identifier: '{entry.id}'")
            if last_segment(entry.metadata.url) != entry.id:
                raise RegistryError(
                    f"Post '{entry.id}' has url '{entry.metadata.url}' "
                    "which does not end with its identifier"
                )
            table[entry.id] = entry
            urls[normalize_url(entry.metadata.url)] = entry.id
        self._entries = MappingProxyType(table)
        self._by_url = MappingProxyType(urls)
        self._ordered = tuple(sorted(table.values(), key=_listing_key))

    def __getitem__(self, post_id: str) -> Entry:
        return self.resolve(post_id)

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, post_id: object) -> bool:
        return post_id in self._entries

    def resolve(self, post_id: str) -> Entry:
        """Look up a post by identifier.

        Raises:
            PostNotFoundError: If no post is registered under ``post_id``.
        """
        entry = self._entries.get(post_id)
        if entry is None:
            raise PostNotFoundError(post_id)
        return entry

    def find(self, post_id: str) -> Entry | None:
        return self._entries.get(post_id)

    def find_by_url(self, url: str) -> Entry | None:
        post_id = self._by_url.get(normalize_url(url))
        return self._entries[post_id] if post_id is not None else None

    def entries(self) -> tuple[Entry, ...]:
        """All entries, newest first."""
        return self._ordered

    def list_all(self) -> tuple[EntryMetadata, ...]:
        """Metadata of every entry, newest first.

        Entries with the same date are ordered by identifier; entries whose
        date cannot be parsed come last.
        """
        return tuple(entry.metadata for entry in self._ordered)

    def __repr__(self) -> str:  # pragma: no cover - for debugging
        return f"EntryRegistry({len(self._entries)} entries)"
