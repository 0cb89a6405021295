"""
Document Format Helpers
=======================

Readers and writers for the container formats the preview engine can open
and re-encode. Everything here is synchronous and works on in-memory bytes;
none of the helpers touch the file system.

Supported Formats
-----------------

.docx (Word 2007+):
    Paragraph text of word/document.xml as simple ``<p>`` HTML, and a writer
    that turns edited HTML back into a minimal Word package.

.xlsx (Excel 2007+):
    One grid of cell strings per worksheet (shared and inline strings, raw
    values otherwise), and a writer producing one worksheet per grid with
    inline-string cells.

.pdf:
    Best-effort text chunks from uncompressed content streams, and a PDF 1.4
    writer drawing each line of text with Helvetica 12pt.

Container Layer
---------------
The OOXML helpers sit on a small ZIP implementation in ``helpers.util``:

    crc32          IEEE 802.3 CRC-32 (table driven)
    inflate        zlib / raw deflate with a logged empty fallback
    zip_archive    Central-directory reader over an owned byte buffer
    zip_builder    Stored-only writer (no compression, no ZIP64)
    zip_bomb       Declared-size limits checked before anything is inflated
    encryption     OLE detection (olefile) for encrypted or legacy files

Common Archive Structure:
    document.docx/
    ├── [Content_Types].xml    # MIME types for parts
    ├── _rels/
    │   └── .rels              # Package relationships
    ├── docProps/
    │   ├── core.xml           # Creator, dates
    │   └── app.xml            # Application properties
    └── word/                   # (or xl/)
        ├── document.xml       # Main content
        └── styles.xml         # Style definitions

Dependencies
------------
lxml: https://lxml.de/
    pip install lxml

    Provides:
    - Lenient HTML fragment parsing for edited document markup

olefile: https://github.com/decalage2/olefile
    pip install olefile

    Provides:
    - OLE compound file detection
    - Stream lookup for the Office encryption wrapper

Known Limitations
-----------------
- Only paragraph and cell text round-trips; styles, tables, images,
  formulas and merged cells are dropped
- Password-protected/encrypted files are rejected
- Legacy binary .doc/.xls files are rejected
- ZIP64 archives and encrypted ZIP entries are rejected
- PDF "pages" are text chunks, not real page boundaries

Usage Example
-------------
    >>> from docpreview.helpers import create_workbook, extract_sheets
    >>> data = create_workbook(["Totals"], [[["Region", "Sum"], ["North", "42"]]])
    >>> extract_sheets(data)[0].grid
    [['Region', 'Sum'], ['North', '42']]

See Also
--------
- docpreview.engine: The state machine using these helpers
- OOXML specification: https://www.ecma-international.org/publications-and-standards/standards/ecma-376/
"""

from docpreview.helpers.docx_helper import create_document, extract_html
from docpreview.helpers.pdf_helper import (
    build_pdf_viewer_url,
    create_pdf,
    extract_pages,
)
from docpreview.helpers.xlsx_helper import (
    Sheet,
    column_index,
    column_name,
    create_workbook,
    extract_sheets,
)

__all__ = [
    "Sheet",
    "build_pdf_viewer_url",
    "column_index",
    "column_name",
    "create_document",
    "create_pdf",
    "create_workbook",
    "extract_html",
    "extract_pages",
    "extract_sheets",
]
