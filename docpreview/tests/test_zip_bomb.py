import io
import zipfile

import pytest

from docpreview.exceptions import FormatError, ZipBombError
from docpreview.helpers.util.zip_archive import ZipArchive, ZipEntry
from docpreview.helpers.util.zip_bomb import ZipBombLimits, validate_entries


def _make_zip_bytes(files: dict[str, bytes]) -> bytes:
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_DEFLATED) as zf:
        for name, data in files.items():
            zf.writestr(name, data)
    return buffer.getvalue()


def test_zip_bomb_detection_can_use_low_thresholds__compression_ratio() -> None:
    data = _make_zip_bytes({"a.txt": b"A" * 10_000})

    with pytest.raises(ZipBombError):
        ZipArchive.from_bytes(
            data,
            limits=ZipBombLimits(
                max_entry_compression_ratio=10.0,
                max_total_compression_ratio=10.0,
            ),
            source="test",
        )

    archive = ZipArchive.from_bytes(
        data,
        limits=ZipBombLimits(
            max_entry_compression_ratio=10_000.0,
            max_total_compression_ratio=10_000.0,
        ),
        source="test",
    )
    assert archive.read_bytes("a.txt") == b"A" * 10_000


def test_zip_bomb_detection_can_use_low_thresholds__entry_count() -> None:
    data = _make_zip_bytes(
        {
            "a.txt": b"a",
            "b.txt": b"b",
            "c.txt": b"c",
        }
    )

    with pytest.raises(ZipBombError):
        ZipArchive.from_bytes(data, limits=ZipBombLimits(max_entries=2), source="test")


def test_zip_bomb_detection_can_use_low_thresholds__single_entry_size() -> None:
    entries = [ZipEntry("big.xml", 0, 900, 1000, 8)]

    with pytest.raises(ZipBombError) as excinfo:
        validate_entries(
            entries, limits=ZipBombLimits(max_single_uncompressed_bytes=999), source="xlsx"
        )

    assert "[xlsx]" in str(excinfo.value)


def test_zip_bomb_rejects_zero_compressed_size() -> None:
    with pytest.raises(ZipBombError):
        validate_entries([ZipEntry("a.txt", 0, 0, 10, 8)])


def test_zip_bomb_ignores_folder_entries() -> None:
    validate_entries([ZipEntry("word/", 0, 0, 10, 0)])


def test_zip_bomb_error_is_a_format_error() -> None:
    assert issubclass(ZipBombError, FormatError)
