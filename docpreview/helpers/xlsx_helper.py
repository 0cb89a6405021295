"""
XLSX Grid Helper
================

Reads every worksheet of an Excel package as a 2-D grid of cell strings and
writes edited grids back as a minimal, valid .xlsx workbook.

File Format Background
----------------------
The .xlsx format is a ZIP archive containing XML parts following the Office
Open XML (OOXML) standard. The parts read here are:

    xl/workbook.xml: Ordered sheet declarations (name + relationship id)
    xl/_rels/workbook.xml.rels: Relationship id -> worksheet part path
    xl/sharedStrings.xml: Shared string table (optional)
    xl/worksheets/sheetN.xml: Rows (<row>) and cells (<c>) of one sheet

XML Namespaces:
    - spreadsheetml: http://schemas.openxmlformats.org/spreadsheetml/2006/main
    - r: http://schemas.openxmlformats.org/officeDocument/2006/relationships

Cell Values
-----------
    - t="s": index into the shared string table
    - t="inlineStr": text of the cell's own <is> element
    - anything else: raw text of <v> (numbers, booleans, cached formula
      results) without number formatting

Known Limitations
-----------------
- Formulas, formatting and merged cells are not preserved
- Dates are returned as their raw serial numbers
- Chartsheets and dialog sheets are skipped when they have no worksheet part
- Written workbooks store every value as an inline string
"""

import datetime
import logging
import posixpath
import re
from typing import NamedTuple, Sequence
from xml.etree.ElementTree import Element as XmlElement

from docpreview.helpers.data_types import column_name
from docpreview.helpers.docx_helper import format_w3cdtf
from docpreview.helpers.util.encryption import ensure_ooxml_package
from docpreview.helpers.util.xml_utils import (
    PKG_REL_NS,
    R_NS,
    S_NS,
    element_text,
    escape_xml,
    qn,
)
from docpreview.helpers.util.zip_archive import ZipArchive
from docpreview.helpers.util.zip_bomb import DEFAULT_ZIP_BOMB_LIMITS, ZipBombLimits
from docpreview.helpers.util.zip_builder import ZipBuilder

logger = logging.getLogger(__name__)

WORKBOOK_PART = "xl/workbook.xml"
WORKBOOK_RELS_PART = "xl/_rels/workbook.xml.rels"
SHARED_STRINGS_PART = "xl/sharedStrings.xml"
XLSX_CONTENT_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

_COLUMN_LETTERS = re.compile(r"[A-Za-z]+")

XLSX_RELS = """<?xml version="1.0" encoding="UTF-8" standalone="yes"?>
<Relationships xmlns="http://schemas.openxmlformats.org/package/2006/relationships">
  <Relationship Id="rId1" Type="http://schemas.openxmlformats.org/officeDocument/2006/relationships/officeDocument" Target="xl/workbook.xml"/>
  <Relationship Id="rId2" Type="http://schemas.openxmlformats.org/package/2006/relationships/metadata/core-properties" Target="docProps/core.xml"/>
  <Relationship Id="rId3" Type="http://schemas.openxmlformats.org/officeDocument/2006/relationships/extended-properties" Target="docProps/app.xml"/>
</Relationships>"""

XLSX_APP = """<?xml version="1.0" encoding="UTF-8" standalone="yes"?>
<Properties xmlns="http://schemas.openxmlformats.org/officeDocument/2006/extended-properties" xmlns:vt="http://schemas.openxmlformats.org/officeDocument/2006/docPropsVTypes">
  <Application>docpreview</Application>
</Properties>"""

XLSX_CORE = """<?xml version="1.0" encoding="UTF-8" standalone="yes"?>
<cp:coreProperties xmlns:cp="http://schemas.openxmlformats.org/package/2006/metadata/core-properties" xmlns:dc="http://purl.org/dc/elements/1.1/" xmlns:dcterms="http://purl.org/dc/terms/" xmlns:dcmitype="http://purl.org/dc/dcmitype/" xmlns:xsi="http://www.w3.org/2001/XMLSchema-instance">
  <dc:creator>docpreview</dc:creator>
  <cp:lastModifiedBy>docpreview</cp:lastModifiedBy>
  <dcterms:created xsi:type="dcterms:W3CDTF">{date}</dcterms:created>
  <dcterms:modified xsi:type="dcterms:W3CDTF">{date}</dcterms:modified>
</cp:coreProperties>"""

XLSX_STYLES = """<?xml version="1.0" encoding="UTF-8" standalone="yes"?>
<styleSheet xmlns="http://schemas.openxmlformats.org/spreadsheetml/2006/main">
  <fonts count="1"><font><sz val="11"/><name val="Calibri"/></font></fonts>
  <fills count="2"><fill><patternFill patternType="none"/></fill><fill><patternFill patternType="gray125"/></fill></fills>
  <borders count="1"><border><left/><right/><top/><bottom/><diagonal/></border></borders>
  <cellStyleXfs count="1"><xf numFmtId="0" fontId="0" fillId="0" borderId="0"/></cellStyleXfs>
  <cellXfs count="1"><xf numFmtId="0" fontId="0" fillId="0" borderId="0" xfId="0"/></cellXfs>
  <cellStyles count="1"><cellStyle name="Normal" xfId="0" builtinId="0"/></cellStyles>
</styleSheet>"""


class Sheet(NamedTuple):
    name: str
    grid: list[list[str]]


def column_index(ref: str) -> int:
    """Zero-based column index of an ``A1``-style reference (``-1`` if none)."""
    match = _COLUMN_LETTERS.match(ref or "")
    if match is None:
        return -1
    result = 0
    for letter in match.group(0).upper():
        result = result * 26 + (ord(letter) - 64)
    return result - 1


def _resolve_target(target: str) -> str:
    """Turn a workbook relationship target into a package part name."""
    if target.startswith("/"):
        return target.lstrip("/")
    return posixpath.normpath(posixpath.join("xl", target))


def _read_relationships(archive: ZipArchive) -> dict[str, str]:
    root = archive.read_xml_root(WORKBOOK_RELS_PART)
    relationships = {}
    for rel in root.iter(qn(PKG_REL_NS, "Relationship")):
        rel_id = rel.get("Id", "")
        target = rel.get("Target", "")
        if rel_id and target:
            relationships[rel_id] = _resolve_target(target)
    return relationships


def _read_shared_strings(archive: ZipArchive) -> list[str]:
    if not archive.exists(SHARED_STRINGS_PART):
        logger.debug("Workbook has no shared string table")
        return []
    root = archive.read_xml_root(SHARED_STRINGS_PART)
    return [
        "".join(element_text(t) for t in si.iter(qn(S_NS, "t")))
        for si in root.iter(qn(S_NS, "si"))
    ]


def _cell_value(cell: XmlElement, shared_strings: list[str]) -> str:
    cell_type = cell.get("t", "")
    if cell_type == "s":
        try:
            index = int(element_text(cell.find(qn(S_NS, "v"))))
        except ValueError:
            return ""
        if 0 <= index < len(shared_strings):
            return shared_strings[index]
        return ""
    if cell_type == "inlineStr":
        inline = cell.find(qn(S_NS, "is"))
        if inline is None:
            return ""
        return "".join(element_text(t) for t in inline.iter(qn(S_NS, "t")))
    return element_text(cell.find(qn(S_NS, "v")))


def parse_sheet(root: XmlElement, shared_strings: list[str]) -> list[list[str]]:
    """
    Convert a worksheet XML root into a grid of strings.

    Rows and cells are placed by their ``r`` references; when a reference is
    missing the next sequential position is used. Gaps become empty strings.
    """
    rows: dict[int, dict[int, str]] = {}
    next_row = 0
    for row in root.iter(qn(S_NS, "row")):
        try:
            row_index = int(row.get("r", "")) - 1
        except ValueError:
            row_index = next_row
        if row_index < 0:
            row_index = next_row
        next_row = row_index + 1

        cells = rows.setdefault(row_index, {})
        next_col = 0
        for cell in row.iter(qn(S_NS, "c")):
            col_index = column_index(cell.get("r", ""))
            if col_index < 0:
                col_index = next_col
            next_col = col_index + 1
            cells[col_index] = _cell_value(cell, shared_strings)

    if not rows:
        return []
    grid = []
    for row_index in range(max(rows) + 1):
        cells = rows.get(row_index, {})
        width = max(cells) + 1 if cells else 0
        grid.append([cells.get(col, "") for col in range(width)])
    return grid


def extract_sheets(
    data: bytes, *, limits: ZipBombLimits = DEFAULT_ZIP_BOMB_LIMITS
) -> list[Sheet]:
    """
    Extract every worksheet of an .xlsx package, in workbook order.

    Raises:
        FormatError: Not a ZIP package, encrypted, or malformed XML.
        NotFoundError: Workbook, its relationships or a worksheet part is missing.
        DecodeError: A required part could not be decompressed.
    """
    ensure_ooxml_package(data, "XLSX")
    archive = ZipArchive.from_bytes(data, limits=limits, source="xlsx")
    workbook = archive.read_xml_root(WORKBOOK_PART)
    relationships = _read_relationships(archive)
    shared_strings = _read_shared_strings(archive)

    sheets = []
    for sheet in workbook.iter(qn(S_NS, "sheet")):
        name = sheet.get("name") or f"Sheet{len(sheets) + 1}"
        part = relationships.get(sheet.get(qn(R_NS, "id"), ""))
        if not part:
            logger.debug(f"Skipping sheet [{name}] without a worksheet relationship")
            continue
        logger.debug(f"Reading sheet: [{name}] from {part}")
        grid = parse_sheet(archive.read_xml_root(part), shared_strings)
        sheets.append(Sheet(name=name, grid=grid))

    logger.info(
        "Extracted XLSX: %d sheets, %d total rows",
        len(sheets),
        sum(len(sheet.grid) for sheet in sheets),
    )
    return sheets


def build_content_types(sheet_count: int) -> str:
    overrides = "".join(
        f'\n  <Override PartName="/xl/worksheets/sheet{n}.xml" '
        'ContentType="application/vnd.openxmlformats-officedocument.spreadsheetml.worksheet+xml"/>'
        for n in range(1, sheet_count + 1)
    )
    return f"""<?xml version="1.0" encoding="UTF-8" standalone="yes"?>
<Types xmlns="http://schemas.openxmlformats.org/package/2006/content-types">
  <Default Extension="rels" ContentType="application/vnd.openxmlformats-package.relationships+xml"/>
  <Default Extension="xml" ContentType="application/xml"/>
  <Override PartName="/xl/workbook.xml" ContentType="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet.main+xml"/>
  <Override PartName="/xl/styles.xml" ContentType="application/vnd.openxmlformats-officedocument.spreadsheetml.styles+xml"/>
  <Override PartName="/docProps/core.xml" ContentType="application/vnd.openxmlformats-package.core-properties+xml"/>
  <Override PartName="/docProps/app.xml" ContentType="application/vnd.openxmlformats-officedocument.extended-properties+xml"/>{overrides}
</Types>"""


def build_workbook_rels(sheet_count: int) -> str:
    rels = "".join(
        f'\n  <Relationship Id="rId{n}" '
        'Type="http://schemas.openxmlformats.org/officeDocument/2006/relationships/worksheet" '
        f'Target="worksheets/sheet{n}.xml"/>'
        for n in range(1, sheet_count + 1)
    )
    styles = (
        f'\n  <Relationship Id="rId{sheet_count + 1}" '
        'Type="http://schemas.openxmlformats.org/officeDocument/2006/relationships/styles" '
        'Target="styles.xml"/>'
    )
    return f"""<?xml version="1.0" encoding="UTF-8" standalone="yes"?>
<Relationships xmlns="{PKG_REL_NS}">{rels}{styles}
</Relationships>"""


def build_workbook_xml(names: Sequence[str]) -> str:
    sheets = "".join(
        f'\n    <sheet name="{escape_xml(name)}" sheetId="{n}" r:id="rId{n}"/>'
        for n, name in enumerate(names, start=1)
    )
    return f"""<?xml version="1.0" encoding="UTF-8" standalone="yes"?>
<workbook xmlns="{S_NS}" xmlns:r="{R_NS}">
  <sheets>{sheets}
  </sheets>
</workbook>"""


def build_sheet_xml(grid: Sequence[Sequence[str | None]]) -> str:
    rows = []
    for row_number, row in enumerate(grid, start=1):
        cells = "".join(
            f'<c r="{column_name(col_number)}{row_number}" t="inlineStr">'
            f'<is><t xml:space="preserve">{escape_xml(str(value))}</t></is></c>'
            for col_number, value in enumerate(row, start=1)
            if value is not None
        )
        rows.append(f'<row r="{row_number}">{cells}</row>')
    return f"""<?xml version="1.0" encoding="UTF-8" standalone="yes"?>
<worksheet xmlns="{S_NS}">
  <sheetData>{"".join(rows)}</sheetData>
</worksheet>"""


def create_workbook(
    names: Sequence[str],
    grids: Sequence[Sequence[Sequence[str | None]]],
    *,
    created: datetime.datetime | None = None,
) -> bytes:
    """
    Build a minimal .xlsx workbook with one worksheet per name.

    Args:
        names: Sheet names, in order.
        grids: Grid for each sheet; a missing grid yields an empty sheet.
        created: Timestamp written to docProps/core.xml (defaults to now).

    Raises:
        ValueError: ``names`` is empty.
    """
    if not names:
        raise ValueError("A workbook needs at least one sheet")

    builder = ZipBuilder()
    builder.add_file("[Content_Types].xml", build_content_types(len(names)))
    builder.add_file("_rels/.rels", XLSX_RELS)
    builder.add_file("docProps/app.xml", XLSX_APP)
    builder.add_file("docProps/core.xml", XLSX_CORE.format(date=format_w3cdtf(created)))
    builder.add_file(WORKBOOK_RELS_PART, build_workbook_rels(len(names)))
    builder.add_file("xl/styles.xml", XLSX_STYLES)
    builder.add_file(WORKBOOK_PART, build_workbook_xml(names))
    for n in range(1, len(names) + 1):
        grid = grids[n - 1] if n - 1 < len(grids) else []
        builder.add_file(f"xl/worksheets/sheet{n}.xml", build_sheet_xml(grid))

    logger.info("Built XLSX with %d sheets", len(names))
    return builder.build()
