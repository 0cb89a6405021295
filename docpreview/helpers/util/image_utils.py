"""
Shared Image Utilities
======================

Signature sniffing and header parsing used to find an image's natural pixel
size without decoding it. Only the header bytes are inspected, so the
preview engine can size an image page before any renderer sees it.
"""

import re
import struct
from typing import Optional

from docpreview.exceptions import FormatError
from docpreview.helpers.util.xml_utils import parse_xml

# =============================================================================
# Image Signatures for Format Detection
# =============================================================================
PNG_SIGNATURE = b"\x89PNG\r\n\x1a\n"
JPEG_SIGNATURE = b"\xff\xd8\xff"
GIF_SIGNATURE = b"GIF8"
BMP_SIGNATURE = b"BM"
WEBP_RIFF_SIGNATURE = b"RIFF"
WEBP_SIGNATURE = b"WEBP"

# Start of Frame markers (SOF0-SOF15, excluding DHT, DAC, JPG)
_JPEG_SOF_MARKERS = frozenset(
    (0xC0, 0xC1, 0xC2, 0xC3, 0xC5, 0xC6, 0xC7, 0xC9, 0xCA, 0xCB, 0xCD, 0xCE, 0xCF)
)

_SVG_LENGTH = re.compile(r"^\s*([0-9]*\.?[0-9]+)\s*(px)?\s*$")


def detect_image_type(data: bytes) -> tuple[str, str] | None:
    """
    Detect image type from binary data by checking file signatures.

    Returns:
        Tuple of (extension, content_type) or None if not recognized.
    """
    if data[:8] == PNG_SIGNATURE:
        return ("png", "image/png")
    if data[:3] == JPEG_SIGNATURE:
        return ("jpeg", "image/jpeg")
    if data[:4] == GIF_SIGNATURE:
        return ("gif", "image/gif")
    if data[:2] == BMP_SIGNATURE:
        return ("bmp", "image/bmp")
    if data[:4] == WEBP_RIFF_SIGNATURE and data[8:12] == WEBP_SIGNATURE:
        return ("webp", "image/webp")
    head = data[:512].lstrip()
    if head.startswith(b"<?xml") or head.startswith(b"<svg"):
        if b"<svg" in data[:4096]:
            return ("svg", "image/svg+xml")
    return None


def get_jpeg_dimensions(data: bytes) -> tuple[Optional[int], Optional[int]]:
    """
    Extract dimensions from JPEG data by scanning for a Start of Frame marker.
    """
    offset = 2  # Skip SOI marker

    while offset < len(data) - 9:
        if data[offset] != 0xFF:
            offset += 1
            continue

        marker = data[offset + 1]

        # Skip padding bytes
        if marker == 0xFF:
            offset += 1
            continue

        if marker in _JPEG_SOF_MARKERS:
            height = struct.unpack(">H", data[offset + 5 : offset + 7])[0]
            width = struct.unpack(">H", data[offset + 7 : offset + 9])[0]
            return (width, height)

        segment_len = struct.unpack(">H", data[offset + 2 : offset + 4])[0]
        offset += 2 + segment_len

    return (None, None)


def _get_webp_dimensions(data: bytes) -> tuple[Optional[int], Optional[int]]:
    chunk = data[12:16]
    if chunk == b"VP8X" and len(data) >= 30:
        width = int.from_bytes(data[24:27], "little") + 1
        height = int.from_bytes(data[27:30], "little") + 1
        return (width, height)
    if chunk == b"VP8 " and len(data) >= 30:
        width = struct.unpack_from("<H", data, 26)[0] & 0x3FFF
        height = struct.unpack_from("<H", data, 28)[0] & 0x3FFF
        return (width, height)
    if chunk == b"VP8L" and len(data) >= 25:
        bits = int.from_bytes(data[21:25], "little")
        return ((bits & 0x3FFF) + 1, ((bits >> 14) & 0x3FFF) + 1)
    return (None, None)


def _svg_length(value: str | None) -> Optional[int]:
    if not value:
        return None
    match = _SVG_LENGTH.match(value)
    if match is None:
        return None
    return int(float(match.group(1)))


def _get_svg_dimensions(data: bytes) -> tuple[Optional[int], Optional[int]]:
    try:
        root = parse_xml(data, "svg")
    except FormatError:
        return (None, None)
    width = _svg_length(root.get("width"))
    height = _svg_length(root.get("height"))
    if width and height:
        return (width, height)
    view_box = (root.get("viewBox") or "").replace(",", " ").split()
    if len(view_box) == 4:
        try:
            return (int(float(view_box[2])), int(float(view_box[3])))
        except ValueError:
            pass
    return (None, None)


def get_image_dimensions(
    data: bytes, image_type: str
) -> tuple[Optional[int], Optional[int]]:
    """
    Extract image dimensions from image data.

    Args:
        data: Image binary data.
        image_type: Extension from ``detect_image_type``.

    Returns:
        Tuple of (width, height) or (None, None) if not extractable.
    """
    try:
        if image_type == "png" and len(data) >= 24:
            # PNG: IHDR chunk starts at byte 8, width at 16, height at 20
            if data[12:16] == b"IHDR":
                width = struct.unpack(">I", data[16:20])[0]
                height = struct.unpack(">I", data[20:24])[0]
                return (width, height)

        elif image_type in ("jpeg", "jpg") and len(data) >= 4:
            return get_jpeg_dimensions(data)

        elif image_type == "bmp" and len(data) >= 26:
            width = struct.unpack_from("<i", data, 18)[0]
            height = abs(struct.unpack_from("<i", data, 22)[0])
            return (width, height)

        elif image_type == "gif" and len(data) >= 10:
            width = struct.unpack_from("<H", data, 6)[0]
            height = struct.unpack_from("<H", data, 8)[0]
            return (width, height)

        elif image_type == "webp":
            return _get_webp_dimensions(data)

        elif image_type == "svg":
            return _get_svg_dimensions(data)

    except (struct.error, IndexError):
        pass

    return (None, None)
