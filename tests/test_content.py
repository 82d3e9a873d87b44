from pathlib import Path

import pytest

from folio.content import (
    ContentError,
    EntryBuilder,
    FileContentLoader,
    load_registry,
)
from folio.entries import RegistryError
from folio.layouts import LayoutDispatcher, LayoutKind


def create_posts(tmp_path: Path) -> Path:
    posts = tmp_path / "posts"
    (posts / "_archive").mkdir(parents=True)
    (posts / "happy-new-year.md").write_text(
        "---\ntitle: Happy New Year\ndate: 1-1-2020\npath: /blog/happy-new-year\n---\n\n"
        "🎉 Happy New Year! 🎉\n",
        encoding="utf-8",
    )
    (posts / "binary.md").write_text(
        "---\ntitle: Binary Objections\ndate: 2-1-2020\npath: /blog/binary-objections\n---\n",
        encoding="utf-8",
    )
    (posts / "2021-05-06-component-views.md").write_text(
        "# Component Based Rails Views\n\nViews as components.\n\n```ruby\nputs 1\n```\n",
        encoding="utf-8",
    )
    (posts / "_draft.md").write_text("# Draft\n", encoding="utf-8")
    (posts / "_archive" / "old.md").write_text("# Old\n", encoding="utf-8")
    (posts / "notes.txt").write_text("ignore", encoding="utf-8")
    return posts


def test_loader_skips_drafts_and_internal_folders(tmp_path):
    posts = create_posts(tmp_path)
    names = [p.name for p in FileContentLoader(posts).iter_files()]
    assert names == ["2021-05-06-component-views.md", "binary.md", "happy-new-year.md"]

    with_drafts = [p.name for p in FileContentLoader(posts).iter_files(include_drafts=True)]
    assert "_draft.md" in with_drafts
    assert "old.md" not in with_drafts


def test_loader_missing_directory(tmp_path):
    assert FileContentLoader(tmp_path / "missing").iter_files() == []


def test_builder_uses_frontmatter(tmp_path):
    posts = create_posts(tmp_path)
    entry = EntryBuilder().build(posts / "happy-new-year.md")
    assert entry.id == "happy-new-year"
    assert entry.metadata.name == "Happy New Year"
    assert entry.metadata.date == "1-1-2020"
    assert entry.metadata.url == "/blog/happy-new-year"
    assert entry.layout is LayoutKind.DEFAULT
    assert entry.gallery is None
    assert entry.source == posts / "happy-new-year.md"
    assert "Happy New Year!" in entry.render_unit.render()


def test_builder_falls_back_to_heading_and_filename(tmp_path):
    posts = create_posts(tmp_path)
    entry = EntryBuilder(blog_prefix="/writing/").build(
        posts / "2021-05-06-component-views.md"
    )
    assert entry.id == "component-views"
    assert entry.metadata.name == "Component Based Rails Views"
    assert entry.metadata.date == "2021-05-06"
    assert entry.metadata.url == "/writing/component-views"
    assert entry.description == "Views as components."
    assert 'class="highlight"' in entry.render_unit.render()


def test_builder_decides_gallery_layout_from_title(tmp_path):
    posts = create_posts(tmp_path)
    entry = EntryBuilder().build(posts / "binary.md")
    assert entry.id == "binary-objections"
    assert entry.layout is LayoutKind.GALLERY
    assert entry.gallery == "binary-objections"


def test_builder_declared_layout_wins(tmp_path):
    path = tmp_path / "photos.md"
    path.write_text(
        "---\ntitle: Binary Objections\nlayout: default\n---\nText\n", encoding="utf-8"
    )
    assert EntryBuilder().build(path).layout is LayoutKind.DEFAULT

    path.write_text(
        "---\ntitle: Summer\nlayout: gallery\ngallery: summer-2020\n---\n", encoding="utf-8"
    )
    entry = EntryBuilder().build(path)
    assert entry.layout is LayoutKind.GALLERY
    assert entry.gallery == "summer-2020"


def test_builder_custom_gallery_titles(tmp_path):
    path = tmp_path / "diary.md"
    path.write_text("---\ntitle: Photo Diary\n---\n", encoding="utf-8")
    builder = EntryBuilder(dispatcher=LayoutDispatcher(["Photo Diary"]))
    assert builder.build(path).layout is LayoutKind.GALLERY


def test_builder_rejects_invalid_layout(tmp_path):
    path = tmp_path / "bad.md"
    path.write_text("---\ntitle: Bad\nlayout: carousel\n---\n", encoding="utf-8")
    with pytest.raises(ContentError) as excinfo:
        EntryBuilder().build(path)
    assert excinfo.value.source_path == path
    assert "carousel" in excinfo.value.message


def test_builder_rejects_slug_path_mismatch(tmp_path):
    path = tmp_path / "mismatch.md"
    path.write_text(
        "---\ntitle: Mismatch\nslug: happy-new-year\npath: /blog/new-year\n---\n",
        encoding="utf-8",
    )
    with pytest.raises(ContentError):
        EntryBuilder().build(path)


def test_builder_rejects_malformed_frontmatter(tmp_path):
    path = tmp_path / "broken.md"
    path.write_text("---\ntitle: [oops\npath: /blog/real-id\n---", encoding="utf-8")
    with pytest.raises(ContentError) as excinfo:
        EntryBuilder().build(path)
    assert excinfo.value.source_path == path
    assert "Invalid frontmatter YAML" in excinfo.value.message


def test_builder_slug_without_path(tmp_path):
    path = tmp_path / "whatever.md"
    path.write_text("---\ntitle: Whatever\nslug: custom-id\n---\n", encoding="utf-8")
    entry = EntryBuilder().build(path)
    assert entry.id == "custom-id"
    assert entry.metadata.url == "/blog/custom-id"


def test_builder_keeps_yaml_date_in_iso_form(tmp_path):
    path = tmp_path / "iso.md"
    path.write_text("---\ntitle: Iso\ndate: 2020-01-02\n---\n", encoding="utf-8")
    assert EntryBuilder().build(path).metadata.date == "2020-01-02"


def test_load_registry(tmp_path):
    posts = create_posts(tmp_path)
    registry = load_registry(posts)
    assert set(registry) == {"happy-new-year", "binary-objections", "component-views"}
    assert [m.name for m in registry.list_all()] == [
        "Component Based Rails Views",
        "Binary Objections",
        "Happy New Year",
    ]
    with_drafts = load_registry(posts, include_drafts=True)
    assert "draft" in with_drafts


def test_load_registry_duplicate_ids(tmp_path):
    posts = tmp_path / "posts"
    posts.mkdir()
    (posts / "a.md").write_text("---\npath: /blog/same\n---\n", encoding="utf-8")
    (posts / "b.md").write_text("---\npath: /notes/same\n---\n", encoding="utf-8")
    with pytest.raises(RegistryError):
        load_registry(posts)
