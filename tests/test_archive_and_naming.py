"""压缩包打包与导出命名测试。"""

from __future__ import annotations

import io
import zipfile

import pytest

from print_mosaic.core import archive as archive_module
from print_mosaic.core.archive import ArchiveBuildError, EmptyArchiveError, package_zip
from print_mosaic.core.models import EncodedBuffer
from print_mosaic.core.naming import (
    base_name,
    extension_for_media_type,
    format_file_size,
    mosaic_archive_name,
    resized_filename,
)


def test_package_zip_names_entries_in_order() -> None:
    buffers = [EncodedBuffer(data=f"piece-{n}".encode(), media_type="image/jpeg") for n in range(9)]

    result = package_zip(buffers, "photo")

    assert result.media_type == "application/zip"
    assert mosaic_archive_name("photo") == "photo_mosaico.zip"
    with zipfile.ZipFile(io.BytesIO(result.data)) as archive:
        names = archive.namelist()
        assert names == [f"photo_parte_{n}.jpg" for n in range(1, 10)]
        assert archive.read("photo_parte_3.jpg") == b"piece-2"


def test_package_zip_uses_subtype_extension() -> None:
    buffers = [
        EncodedBuffer(data=b"a", media_type="image/png"),
        EncodedBuffer(data=b"b", media_type="image/webp"),
        EncodedBuffer(data=b"c", media_type=""),
    ]

    result = package_zip(buffers, "mix")

    with zipfile.ZipFile(io.BytesIO(result.data)) as archive:
        assert archive.namelist() == ["mix_parte_1.png", "mix_parte_2.webp", "mix_parte_3.jpg"]


def test_package_zip_rejects_empty_input() -> None:
    with pytest.raises(EmptyArchiveError):
        package_zip([], "photo")


def test_package_zip_wraps_compression_failure(monkeypatch: pytest.MonkeyPatch) -> None:
    class BrokenZip:
        def __init__(self, *args, **kwargs) -> None:
            raise OSError("no space left")

    monkeypatch.setattr(archive_module.zipfile, "ZipFile", BrokenZip)

    with pytest.raises(ArchiveBuildError, match="photo"):
        package_zip([EncodedBuffer(data=b"x", media_type="image/jpeg")], "photo")


@pytest.mark.parametrize(
    "media_type, expected",
    [
        ("image/jpeg", "jpg"),
        ("image/png", "png"),
        ("image/webp", "webp"),
        ("image/svg+xml", "svg"),
        ("image/png; charset=binary", "png"),
        ("", "jpg"),
        ("image", "jpg"),
    ],
)
def test_extension_for_media_type(media_type: str, expected: str) -> None:
    assert extension_for_media_type(media_type) == expected


def test_resized_filename_keeps_original_extension() -> None:
    assert resized_filename("photo.JPG", "image/jpeg") == "photo_resized.JPG"
    assert resized_filename("my.trip.png", "image/png") == "my.trip_resized.png"
    assert resized_filename("scan", "image/png") == "scan_resized.png"


def test_base_name_strips_last_extension() -> None:
    assert base_name("photo.jpg") == "photo"
    assert base_name("a.b.c.png") == "a.b.c"
    assert base_name("noext") == "noext"
    assert base_name(".hidden") == ".hidden"


@pytest.mark.parametrize(
    "num_bytes, expected",
    [(0, "0 Bytes"), (512, "512 Bytes"), (1024, "1 KB"), (1536, "1.5 KB"), (5 * 1024**2, "5 MB")],
)
def test_format_file_size(num_bytes: int, expected: str) -> None:
    assert format_file_size(num_bytes) == expected
