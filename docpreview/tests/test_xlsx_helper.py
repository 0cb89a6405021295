import io
import unittest

import openpyxl
import pytest

from docpreview.exceptions import NotFoundError
from docpreview.helpers.util.xml_utils import PKG_REL_NS, R_NS, S_NS
from docpreview.helpers.util.zip_archive import ZipArchive
from docpreview.helpers.util.zip_builder import ZipBuilder
from docpreview.helpers.xlsx_helper import (
    column_index,
    column_name,
    create_workbook,
    extract_sheets,
)

tc = unittest.TestCase()


def _workbook_xml(*sheets: tuple[str, str]) -> str:
    entries = "".join(
        f'<sheet name="{name}" sheetId="{n}" r:id="{rel_id}"/>'
        for n, (name, rel_id) in enumerate(sheets, start=1)
    )
    return f'<workbook xmlns="{S_NS}" xmlns:r="{R_NS}"><sheets>{entries}</sheets></workbook>'


def _rels_xml(**targets: str) -> str:
    rels = "".join(
        f'<Relationship Id="{rel_id}" Type="worksheet" Target="{target}"/>'
        for rel_id, target in targets.items()
    )
    return f'<Relationships xmlns="{PKG_REL_NS}">{rels}</Relationships>'


def _sheet_xml(rows: str) -> str:
    return f'<worksheet xmlns="{S_NS}"><sheetData>{rows}</sheetData></worksheet>'


def _package(files: dict[str, str]) -> bytes:
    builder = ZipBuilder()
    for name, content in files.items():
        builder.add_file(name, content)
    return builder.build()


def test_shared_and_inline_strings():
    data = _package(
        {
            "xl/workbook.xml": _workbook_xml(("Summary", "rId1")),
            "xl/_rels/workbook.xml.rels": _rels_xml(rId1="worksheets/sheet1.xml"),
            "xl/sharedStrings.xml": f'<sst xmlns="{S_NS}"><si><t>Total</t></si></sst>',
            "xl/worksheets/sheet1.xml": _sheet_xml(
                '<row r="1"><c r="A1" t="s"><v>0</v></c>'
                '<c r="B1" t="inlineStr"><is><t>42</t></is></c></row>'
            ),
        }
    )

    sheets = extract_sheets(data)

    tc.assertEqual(1, len(sheets))
    tc.assertEqual("Summary", sheets[0].name)
    tc.assertListEqual([["Total", "42"]], sheets[0].grid)


def test_gaps_rich_text_and_raw_values():
    data = _package(
        {
            "xl/workbook.xml": _workbook_xml(("Data", "rId7")),
            "xl/_rels/workbook.xml.rels": _rels_xml(rId7="/xl/worksheets/data.xml"),
            "xl/sharedStrings.xml": (
                f'<sst xmlns="{S_NS}"><si><r><t>Rich </t></r><r><t>text</t></r></si></sst>'
            ),
            "xl/worksheets/data.xml": _sheet_xml(
                '<row r="1"><c r="A1" t="s"><v>0</v></c><c r="C1" t="s"><v>9</v></c></row>'
                '<row r="3"><c r="B3"><v>3.5</v></c><c r="D3" t="b"><v>1</v></c></row>'
            ),
        }
    )

    grid = extract_sheets(data)[0].grid

    tc.assertListEqual(
        [["Rich text", "", ""], [], ["", "3.5", "", "1"]],
        grid,
    )


def test_missing_references_fall_back_to_sequential_positions():
    data = _package(
        {
            "xl/workbook.xml": _workbook_xml(("Plain", "rId1")),
            "xl/_rels/workbook.xml.rels": _rels_xml(rId1="worksheets/sheet1.xml"),
            "xl/worksheets/sheet1.xml": _sheet_xml(
                '<row><c t="inlineStr"><is><t>a</t></is></c><c><v>1</v></c></row>'
                '<row><c t="inlineStr"><is><t>b</t></is></c></row>'
            ),
        }
    )

    tc.assertListEqual([["a", "1"], ["b"]], extract_sheets(data)[0].grid)


def test_out_of_range_shared_string_index_is_empty():
    data = _package(
        {
            "xl/workbook.xml": _workbook_xml(("Summary", "rId1")),
            "xl/_rels/workbook.xml.rels": _rels_xml(rId1="worksheets/sheet1.xml"),
            "xl/sharedStrings.xml": (
                f'<sst xmlns="{S_NS}"><si><t>A</t></si><si><t>LAST</t></si></sst>'
            ),
            "xl/worksheets/sheet1.xml": _sheet_xml(
                '<row r="1"><c r="A1" t="s"><v>-1</v></c><c r="B1" t="s"><v>2</v></c>'
                '<c r="C1" t="s"><v>one</v></c><c r="D1" t="s"><v>1</v></c></row>'
            ),
        }
    )

    tc.assertListEqual([["", "", "", "LAST"]], extract_sheets(data)[0].grid)


def test_non_positive_row_reference_uses_next_row():
    data = _package(
        {
            "xl/workbook.xml": _workbook_xml(("Plain", "rId1")),
            "xl/_rels/workbook.xml.rels": _rels_xml(rId1="worksheets/sheet1.xml"),
            "xl/worksheets/sheet1.xml": _sheet_xml(
                '<row r="0"><c t="inlineStr"><is><t>x</t></is></c></row>'
                '<row r="-4"><c t="inlineStr"><is><t>y</t></is></c></row>'
            ),
        }
    )

    tc.assertListEqual([["x"], ["y"]], extract_sheets(data)[0].grid)


def test_sheets_without_relationship_are_skipped():
    data = _package(
        {
            "xl/workbook.xml": _workbook_xml(("Chart", "rId9"), ("Numbers", "rId1")),
            "xl/_rels/workbook.xml.rels": _rels_xml(rId1="worksheets/sheet1.xml"),
            "xl/worksheets/sheet1.xml": _sheet_xml('<row r="1"><c r="A1"><v>7</v></c></row>'),
        }
    )

    sheets = extract_sheets(data)

    tc.assertListEqual(["Numbers"], [sheet.name for sheet in sheets])


def test_missing_worksheet_part_raises_not_found():
    data = _package(
        {
            "xl/workbook.xml": _workbook_xml(("Gone", "rId1")),
            "xl/_rels/workbook.xml.rels": _rels_xml(rId1="worksheets/sheet1.xml"),
        }
    )

    with pytest.raises(NotFoundError):
        extract_sheets(data)


def test_create_workbook_round_trip():
    names = ["Summary", "Q&A <2024>"]
    grids = [
        [["Region", "Sum"], ["North", "42"]],
        [["a", None, "c"], [], ["", "x"]],
    ]

    sheets = extract_sheets(create_workbook(names, grids))

    tc.assertListEqual(names, [sheet.name for sheet in sheets])
    tc.assertListEqual([["Region", "Sum"], ["North", "42"]], sheets[0].grid)
    tc.assertListEqual([["a", "", "c"], [], ["", "x"]], sheets[1].grid)


def test_create_workbook_missing_grid_yields_empty_sheet():
    sheets = extract_sheets(create_workbook(["One", "Two"], [[["only"]]]))

    tc.assertListEqual([["only"]], sheets[0].grid)
    tc.assertListEqual([], sheets[1].grid)


def test_create_workbook_declares_every_worksheet():
    archive = ZipArchive.from_bytes(create_workbook(["A", "B", "C"], []))
    content_types = archive.read_text("[Content_Types].xml")

    for n in (1, 2, 3):
        tc.assertIn(f'PartName="/xl/worksheets/sheet{n}.xml"', content_types)
        tc.assertTrue(archive.exists(f"xl/worksheets/sheet{n}.xml"))


def test_create_workbook_requires_a_sheet():
    with pytest.raises(ValueError):
        create_workbook([], [])


def test_created_workbook_opens_with_openpyxl():
    data = create_workbook(
        ["Totals", "Notes"], [[["Region", "Sum"], ["North", "42"]], [["Tom & Jerry"]]]
    )

    workbook = openpyxl.load_workbook(io.BytesIO(data))

    tc.assertListEqual(["Totals", "Notes"], workbook.sheetnames)
    sheet = workbook["Totals"]
    tc.assertEqual("Region", sheet["A1"].value)
    tc.assertEqual("42", sheet["B2"].value)
    tc.assertEqual("Tom & Jerry", workbook["Notes"]["A1"].value)


def test_extract_sheets_from_openpyxl_workbook():
    workbook = openpyxl.Workbook()
    sheet = workbook.active
    sheet.title = "Stock"
    sheet.append(["Name", "Qty"])
    sheet.append(["Bolts", 12])
    other = workbook.create_sheet("Empty")
    other["B2"] = "corner"
    buffer = io.BytesIO()
    workbook.save(buffer)

    sheets = extract_sheets(buffer.getvalue())

    tc.assertListEqual(["Stock", "Empty"], [s.name for s in sheets])
    tc.assertListEqual([["Name", "Qty"], ["Bolts", "12"]], sheets[0].grid)
    tc.assertListEqual([[], ["", "corner"]], sheets[1].grid)


def test_column_helpers():
    tc.assertEqual("A", column_name(1))
    tc.assertEqual("Z", column_name(26))
    tc.assertEqual("AA", column_name(27))
    tc.assertEqual("AAA", column_name(703))
    tc.assertEqual(0, column_index("A1"))
    tc.assertEqual(26, column_index("AA10"))
    tc.assertEqual(702, column_index("aaa3"))
    tc.assertEqual(-1, column_index(""))
    tc.assertEqual(-1, column_index("12"))
