"""
PDF Text Helper
===============

Best-effort text extraction from raw PDF bytes and a writer that turns
edited text back into a small, valid PDF 1.4 file.

Extraction Heuristic
--------------------
The whole file is decoded as Latin-1 and split on the literal token
``\\nstartxref``. Each resulting chunk is scanned for two content-stream
text operators:

    (literal) Tj           show a single string
    [(a) -120 (b)] TJ      show an array of strings with kerning offsets

Matches are taken in file order; literal strings are unescaped for
``\\n \\r \\t \\( \\) \\\\``. A chunk that yields no text is dropped.

A "page" is therefore a text chunk, not a real PDF page. Files written by
``create_pdf`` hold a single chunk, so all of their pages come back joined
together as one.

Known Limitations
-----------------
- Compressed (FlateDecode) content streams and object streams yield no text
- Hex strings (<...> Tj), octal escapes and font encodings are not decoded
- Encrypted files yield no text
- Text positioning is ignored; strings are joined with newlines

Writing
-------
``create_pdf`` emits a Catalog (object 1), a Pages node (object 2), a shared
Helvetica font (object 3), and for every page a content stream followed by
its Page object. Byte offsets in the xref table are computed over the
encoded output. Text outside Latin-1 is replaced with ``?``.
"""

import logging
import math
import re
from typing import Sequence

from docpreview.helpers.data_types import PdfPageData, Zoom, ZoomMode

logger = logging.getLogger(__name__)

PDF_CONTENT_TYPE = "application/pdf"
PDF_HEADER = b"%PDF-1.4\n"
PAGE_MEDIA_BOX = (0, 0, 595, 842)

FONT_SIZE = 12
LINE_HEIGHT = 18
TEXT_ORIGIN = (50, 800)

_CHUNK_SEPARATOR = "\nstartxref"
_TEXT_OPERATOR = re.compile(r"\(((?:\\.|[^\\)])*)\)\s*Tj|\[(.*?)\]\s*TJ")
_LITERAL_STRING = re.compile(r"\(((?:\\.|[^\\)])*)\)")
_ESCAPE = re.compile(r"\\([nrt()\\])")
_ESCAPES = {"n": "\n", "r": "\r", "t": "\t", "(": "(", ")": ")", "\\": "\\"}
_LINE_BREAK = re.compile(r"\r?\n")


def unescape_literal(value: str) -> str:
    return _ESCAPE.sub(lambda match: _ESCAPES[match.group(1)], value)


def escape_literal(value: str) -> str:
    return value.replace("\\", "\\\\").replace("(", "\\(").replace(")", "\\)")


def extract_chunk_text(content: str) -> str:
    """Collect the strings shown by Tj/TJ operators in ``content``."""
    results = []
    for match in _TEXT_OPERATOR.finditer(content):
        literal, array = match.group(1), match.group(2)
        if literal is not None:
            results.append(unescape_literal(literal))
        else:
            results.append(
                "".join(
                    unescape_literal(part)
                    for part in _LITERAL_STRING.findall(array)
                )
            )
    return "\n".join(results)


def extract_pages(data: bytes) -> list[PdfPageData]:
    """
    Extract text chunks from raw PDF bytes.

    Never raises for unreadable content: a chunk without recognizable text
    contributes nothing, and a file without any yields an empty list.
    """
    content = data.decode("latin-1")
    pages = []
    for chunk in content.split(_CHUNK_SEPARATOR):
        text = extract_chunk_text(chunk).strip()
        if text:
            pages.append(PdfPageData(original_text=text, edited_text=text))

    logger.info("Extracted PDF: %d text chunks", len(pages))
    return pages


def build_content_stream(text: str) -> bytes:
    operations = ["BT", f"/F1 {FONT_SIZE} Tf"]
    for index, line in enumerate(_LINE_BREAK.split(text)):
        if index == 0:
            operations.append(f"{TEXT_ORIGIN[0]} {TEXT_ORIGIN[1]} Td")
        else:
            operations.append(f"0 -{LINE_HEIGHT} Td")
        operations.append(f"({escape_literal(line)}) Tj")
    operations.append("ET")
    stream = "\n".join(operations).encode("latin-1", errors="replace")
    return b"<< /Length %d >>\nstream\n" % len(stream) + stream + b"\nendstream"


def _build_obj(obj_num: int, body: bytes) -> bytes:
    return b"%d 0 obj\n" % obj_num + body + b"\nendobj\n"


def create_pdf(pages: Sequence[PdfPageData]) -> bytes:
    """
    Build a PDF 1.4 file with one page per entry of ``pages``.

    Each line of a page's edited text is drawn with Helvetica 12pt, starting
    at (50, 800) and stepping 18pt down per line.
    """
    bodies: list[bytes] = [
        b"<< /Type /Catalog /Pages 2 0 R >>",
        b"",  # Pages node, filled in once every page object exists
        b"<< /Type /Font /Subtype /Type1 /BaseFont /Helvetica >>",
    ]
    pages_num, font_num = 2, 3
    media_box = " ".join(str(value) for value in PAGE_MEDIA_BOX).encode("ascii")

    page_refs = []
    for page in pages:
        bodies.append(build_content_stream(page.edited_text))
        content_num = len(bodies)
        bodies.append(
            b"<< /Type /Page /Parent %d 0 R /MediaBox [%s] "
            b"/Resources << /Font << /F1 %d 0 R >> >> /Contents %d 0 R >>"
            % (pages_num, media_box, font_num, content_num)
        )
        page_refs.append(len(bodies))

    kids = " ".join(f"{ref} 0 R" for ref in page_refs).encode("ascii")
    bodies[pages_num - 1] = b"<< /Type /Pages /Kids [%s] /Count %d >>" % (
        kids,
        len(page_refs),
    )

    output = bytearray(PDF_HEADER)
    offsets = []
    for obj_num, body in enumerate(bodies, start=1):
        offsets.append(len(output))
        output += _build_obj(obj_num, body)

    xref_offset = len(output)
    output += b"xref\n0 %d\n" % (len(bodies) + 1)
    output += b"0000000000 65535 f \n"
    for offset in offsets:
        output += f"{offset:010d} 00000 n \n".encode("ascii")
    output += b"trailer\n<< /Size %d /Root 1 0 R >>\n" % (len(bodies) + 1)
    output += b"startxref\n%d\n%%%%EOF" % xref_offset

    logger.info("Built PDF with %d pages, %d bytes", len(page_refs), len(output))
    return bytes(output)


def build_pdf_viewer_url(base_url: str, page_index: int, zoom: Zoom) -> str:
    """
    Viewer URL opening ``base_url`` at a 0-based page index.

    Numeric zoom factors are written as whole percentages; named modes are
    passed through (``#page=1&zoom=page-fit``).
    """
    if isinstance(zoom, ZoomMode):
        zoom_value = zoom.value
    else:
        zoom_value = str(math.floor(zoom * 100 + 0.5))
    return f"{base_url}#page={page_index + 1}&zoom={zoom_value}"
