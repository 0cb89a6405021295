import json
import logging
import unittest

from docpreview.helpers.data_types import (
    BinaryPageData,
    PreviewDocument,
    PreviewKind,
    PreviewPage,
    SavedFile,
    SpreadsheetPageData,
    ZoomMode,
)
from docpreview.helpers.serialization import serialize_document

logger = logging.getLogger(__name__)

tc = unittest.TestCase()
tc.maxDiff = None


def test_serialize_spreadsheet_document():
    page = PreviewPage(
        label="Totals",
        width=1024,
        height=768,
        data=SpreadsheetPageData(
            original_grid=[["Region", "Sum"]], edited_grid=[["Region", "Total"]]
        ),
    )
    document = PreviewDocument(
        kind=PreviewKind.SPREADSHEET, pages=(page,), editable=True
    )

    payload = serialize_document(document)

    tc.assertDictEqual(
        {
            "_type": "PreviewDocument",
            "kind": "spreadsheet",
            "pages": [
                {
                    "_type": "PreviewPage",
                    "label": "Totals",
                    "width": 1024,
                    "height": 768,
                    "data": {
                        "_type": "SpreadsheetPageData",
                        "original_grid": [["Region", "Sum"]],
                        "edited_grid": [["Region", "Total"]],
                    },
                }
            ],
            "current_page": 0,
            "zoom": 1.0,
            "fit_zoom": 1.0,
            "editable": True,
            "source_handle": None,
        },
        payload,
    )
    tc.assertEqual(payload, json.loads(json.dumps(payload)))


def test_serialize_zoom_mode_and_binary_page():
    document = PreviewDocument(
        kind=PreviewKind.PDF,
        zoom=ZoomMode.PAGE_FIT,
        source_handle="blob:docpreview/1",
        pages=(PreviewPage("File", 800, 600, BinaryPageData("blob:docpreview/1")),),
    )

    payload = serialize_document(document)

    tc.assertEqual("page-fit", payload["zoom"])
    tc.assertEqual("pdf", payload["kind"])
    tc.assertEqual("blob:docpreview/1", payload["pages"][0]["data"]["resource_url"])


def test_serialize_bytes_as_base64():
    payload = serialize_document(SavedFile("a.pdf", "application/pdf", b"%PDF"))

    tc.assertEqual({"_bytes": "JVBERg=="}, payload["data"])
    tc.assertEqual("SavedFile", payload["_type"])


def test_serialize_non_dataclass_value():
    tc.assertEqual({"value": [1, 2]}, serialize_document((1, 2)))
