import io
import re
import unittest

import pypdf

from docpreview.helpers.data_types import PdfPageData, ZoomMode
from docpreview.helpers.pdf_helper import (
    build_pdf_viewer_url,
    create_pdf,
    extract_chunk_text,
    extract_pages,
)

tc = unittest.TestCase()


def _page(text: str) -> PdfPageData:
    return PdfPageData(original_text=text, edited_text=text)


def test_extract_simple_text_operator():
    pages = extract_pages(b"BT /F1 12 Tf 50 800 Td (Hi there) Tj ET")

    tc.assertListEqual([_page("Hi there")], pages)


def test_extract_array_operator_and_escapes():
    content = r"BT [(Hel) -20 (lo) 15 (\(x\))] TJ (Line\nTwo \\ end) Tj ET"

    tc.assertEqual("Hello(x)\nLine\nTwo \\ end", extract_chunk_text(content))


def test_extract_splits_chunks_and_drops_empty_ones():
    data = (
        b"%PDF-1.4\nBT (First) Tj ET\nstartxref\n10\n%%EOF\n"
        b"1 0 obj << /Length 5 >> stream\nxxxxx\nendstream\nstartxref\n20\n%%EOF\n"
        b"BT (Second) Tj ET"
    )

    tc.assertListEqual(["First", "Second"], [p.original_text for p in extract_pages(data)])


def test_extract_without_text_yields_no_pages():
    tc.assertListEqual([], extract_pages(b""))
    tc.assertListEqual([], extract_pages(b"%PDF-1.4\n<< /Filter /FlateDecode >>\nstream\n\x78\x9c\xff\x00\nendstream"))


def test_create_pdf_structure():
    data = create_pdf([_page("One\nTwo"), _page("Three (3)")])

    tc.assertTrue(data.startswith(b"%PDF-1.4\n"))
    tc.assertTrue(data.endswith(b"%%EOF"))
    tc.assertIn(b"<< /Type /Pages /Kids [5 0 R 7 0 R] /Count 2 >>", data)
    tc.assertIn(b"BT\n/F1 12 Tf\n50 800 Td\n(One) Tj\n0 -18 Td\n(Two) Tj\nET", data)
    tc.assertIn(b"(Three \\(3\\)) Tj", data)
    tc.assertIn(b"trailer\n<< /Size 8 /Root 1 0 R >>", data)


def test_create_pdf_xref_offsets_point_at_objects():
    data = create_pdf([_page("Alpha"), _page("Beta\nGamma")])

    startxref = int(re.search(rb"startxref\n(\d+)\n%%EOF$", data).group(1))
    tc.assertTrue(data[startxref:].startswith(b"xref\n0 8\n0000000000 65535 f \n"))

    offsets = re.findall(rb"(\d{10}) 00000 n \n", data[startxref:])
    tc.assertEqual(7, len(offsets))
    for number, offset in enumerate(offsets, start=1):
        tc.assertTrue(data[int(offset):].startswith(b"%d 0 obj\n" % number))


def test_create_pdf_content_length_matches_stream():
    data = create_pdf([_page("Grüße")])

    match = re.search(rb"<< /Length (\d+) >>\nstream\n(.*?)\nendstream", data, re.DOTALL)
    tc.assertEqual(int(match.group(1)), len(match.group(2)))
    tc.assertIn("(Grüße) Tj".encode("latin-1"), match.group(2))


def test_create_pdf_replaces_text_outside_latin1():
    data = create_pdf([_page("Привет €")])

    tc.assertIn(b"(?????? ?) Tj", data)


def test_created_pdf_text_comes_back_as_one_chunk():
    data = create_pdf([_page("One\nTwo"), _page("Three (3)")])

    tc.assertListEqual(["One\nTwo\nThree (3)"], [p.original_text for p in extract_pages(data)])


def test_created_pdf_opens_with_pypdf():
    data = create_pdf([_page("Hello PDF"), _page("Second page")])

    reader = pypdf.PdfReader(io.BytesIO(data))

    tc.assertEqual(2, len(reader.pages))
    tc.assertEqual(595, float(reader.pages[0].mediabox.width))
    tc.assertEqual(842, float(reader.pages[0].mediabox.height))
    tc.assertIn("Hello PDF", reader.pages[0].extract_text())
    tc.assertIn("Second page", reader.pages[1].extract_text())


def test_create_pdf_without_pages():
    data = create_pdf([])

    tc.assertIn(b"/Kids [] /Count 0", data)


def test_viewer_url():
    tc.assertEqual("blob:x#page=1&zoom=150", build_pdf_viewer_url("blob:x", 0, 1.5))
    tc.assertEqual("blob:x#page=3&zoom=25", build_pdf_viewer_url("blob:x", 2, 0.25))
    tc.assertEqual(
        "blob:x#page=1&zoom=page-fit", build_pdf_viewer_url("blob:x", 0, ZoomMode.PAGE_FIT)
    )
    tc.assertEqual(
        "blob:x#page=2&zoom=page-width",
        build_pdf_viewer_url("blob:x", 1, ZoomMode.PAGE_WIDTH),
    )
    tc.assertEqual("blob:x#page=1&zoom=auto", build_pdf_viewer_url("blob:x", 0, ZoomMode.AUTO))
