from PIL import Image

from folio.gallery import GalleryImage, ImageQuery
from folio.protocols import ImageSource


def write_png(path, size=(4, 3)):
    path.parent.mkdir(parents=True, exist_ok=True)
    Image.new("RGB", size, color="red").save(path)


def test_images_are_ordered_and_filtered(tmp_path):
    images = tmp_path / "images"
    gallery = images / "binary-objections"
    write_png(gallery / "10-last.png")
    write_png(gallery / "2-second.png")
    write_png(gallery / "1-first.png", size=(8, 6))
    write_png(gallery / "cover.png")
    (gallery / "notes.txt").write_text("skip", encoding="utf-8")
    Image.new("RGB", (2, 2)).save(gallery / "photo.jpg")

    query = ImageQuery(images)
    assert isinstance(query, ImageSource)
    result = query.images("binary-objections")
    assert [img.path.name for img in result] == [
        "1-first.png",
        "2-second.png",
        "10-last.png",
        "cover.png",
    ]
    first = result[0]
    assert first.url == "/assets/images/binary-objections/1-first.png"
    assert (first.width, first.height) == (8, 6)
    assert first.alt == "1 first"


def test_extensions_are_configurable(tmp_path):
    gallery = tmp_path / "summer"
    write_png(gallery / "a.png")
    Image.new("RGB", (2, 2)).save(gallery / "b.jpg")
    query = ImageQuery(tmp_path, extensions=[".JPG", "png"])
    assert [img.path.name for img in query.images("summer")] == ["a.png", "b.jpg"]


def test_missing_gallery_is_empty(tmp_path):
    assert ImageQuery(tmp_path).images("nope") == []


def test_unreadable_image_has_no_size(tmp_path, capsys):
    gallery = tmp_path / "broken"
    gallery.mkdir()
    (gallery / "bad.png").write_bytes(b"not an image")
    result = ImageQuery(tmp_path).images("broken")
    assert result == [
        GalleryImage(
            path=gallery / "bad.png",
            url="/assets/images/broken/bad.png",
            width=None,
            height=None,
        )
    ]
    assert "Could not read image size" in capsys.readouterr().out
