from types import SimpleNamespace

import pytest
from PIL import Image

from iphoto_migrator.metadata import exif as exif_module
from iphoto_migrator.metadata.exif import MetadataExtractor


@pytest.fixture
def extractor():
    return MetadataExtractor()


def _jpeg_with_orientation(path, orientation):
    img = Image.new("RGB", (16, 8), color="red")
    tags = Image.Exif()
    tags[0x0112] = orientation
    img.save(path, "JPEG", exif=tags)
    return path


def test_orientation_from_real_jpeg(tmp_path, extractor):
    path = _jpeg_with_orientation(tmp_path / "rotated.jpg", 6)
    assert extractor.get_orientation(path) == 6
    assert extractor.get_rotation(path) == 90


def test_jpeg_without_exif(tmp_path, extractor):
    path = tmp_path / "plain.jpg"
    Image.new("RGB", (4, 4)).save(path, "JPEG")
    assert extractor.get_orientation(path) is None
    assert extractor.get_rotation(path) == 0


@pytest.mark.parametrize("orientation,rotation", [(1, 0), (3, 180), (6, 90), (8, 270), (2, 0), (5, 0)])
def test_orientation_to_rotation(tmp_path, extractor, monkeypatch, orientation, rotation):
    path = tmp_path / "x.cr2"
    path.write_bytes(b"raw")
    monkeypatch.setattr(
        exif_module.exifread, "process_file",
        lambda f, details=False: {"Image Orientation": SimpleNamespace(values=[orientation])},
    )
    assert extractor.get_rotation(path) == rotation


def test_reader_failure_is_not_fatal(tmp_path, extractor, monkeypatch, caplog):
    path = tmp_path / "broken.nef"
    path.write_bytes(b"\x00")

    def boom(f, details=False):
        raise ValueError("corrupt")

    monkeypatch.setattr(exif_module.exifread, "process_file", boom)
    assert extractor.get_rotation(path) == 0
    assert "broken.nef" in caplog.text


def test_missing_file_has_no_rotation(tmp_path, extractor):
    assert extractor.get_rotation(tmp_path / "nope.jpg") == 0
