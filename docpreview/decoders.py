"""
Per-kind decoders turning raw bytes into a ``PreviewDocument``.

Every decoder shares the signature ``(data, *, config, resources)``. Decoders
that keep the bytes around (image, pdf, binary) register a resource handle
as their last step, so a decoder that raises never leaves a handle behind.
"""

import logging

from docpreview.config import PreviewConfig
from docpreview.exceptions import FormatError
from docpreview.helpers.data_types import (
    BinaryPageData,
    HtmlPageData,
    PreviewDocument,
    PreviewKind,
    PreviewPage,
    SpreadsheetPageData,
    TextPageData,
    ZoomMode,
)
from docpreview.helpers.docx_helper import extract_html
from docpreview.helpers.pdf_helper import PDF_CONTENT_TYPE
from docpreview.helpers.util.image_utils import detect_image_type, get_image_dimensions
from docpreview.helpers.xlsx_helper import extract_sheets
from docpreview.resources import ResourceRegistry

logger = logging.getLogger(__name__)

IMAGE_LABEL = "Image"
DOCUMENT_LABEL = "Document"
TEXT_LABEL = "Text"
FILE_LABEL = "File"

BINARY_CONTENT_TYPE = "application/octet-stream"


def decode_image(
    data: bytes, *, config: PreviewConfig, resources: ResourceRegistry
) -> PreviewDocument:
    detected = detect_image_type(data)
    if detected is None:
        raise FormatError("Unrecognized image format")
    image_type, content_type = detected
    width, height = get_image_dimensions(data, image_type)
    if not width or not height:
        raise FormatError(f"Could not read {image_type} image dimensions")

    logger.debug(f"Decoded {image_type} image: {width}x{height}")
    handle = resources.create(data, content_type)
    page = PreviewPage(
        label=IMAGE_LABEL,
        width=width,
        height=height,
        data=BinaryPageData(resource_url=handle),
    )
    return PreviewDocument(
        kind=PreviewKind.IMAGE, pages=(page,), editable=False, source_handle=handle
    )


def decode_pdf(
    data: bytes, *, config: PreviewConfig, resources: ResourceRegistry
) -> PreviewDocument:
    """Register the bytes for the viewer; text pages are extracted on demand."""
    handle = resources.create(data, PDF_CONTENT_TYPE)
    return PreviewDocument(
        kind=PreviewKind.PDF,
        pages=(),
        zoom=ZoomMode.PAGE_FIT,
        editable=True,
        source_handle=handle,
    )


def decode_docx(
    data: bytes, *, config: PreviewConfig, resources: ResourceRegistry
) -> PreviewDocument:
    html = extract_html(data, limits=config.zip_limits)
    width, height = config.page_size(PreviewKind.DOCX)
    page = PreviewPage(
        label=DOCUMENT_LABEL,
        width=width,
        height=height,
        data=HtmlPageData(original_html=html, edited_html=html),
    )
    return PreviewDocument(kind=PreviewKind.DOCX, pages=(page,), editable=True)


def decode_spreadsheet(
    data: bytes, *, config: PreviewConfig, resources: ResourceRegistry
) -> PreviewDocument:
    sheets = extract_sheets(data, limits=config.zip_limits)
    if not sheets:
        raise FormatError("Workbook contains no worksheets")
    width, height = config.page_size(PreviewKind.SPREADSHEET)
    pages = tuple(
        PreviewPage(
            label=sheet.name,
            width=width,
            height=height,
            data=SpreadsheetPageData(original_grid=sheet.grid, edited_grid=sheet.grid),
        )
        for sheet in sheets
    )
    return PreviewDocument(kind=PreviewKind.SPREADSHEET, pages=pages, editable=True)


def decode_text(
    data: bytes, *, config: PreviewConfig, resources: ResourceRegistry
) -> PreviewDocument:
    text = data.decode("utf-8", errors="replace")
    width, height = config.page_size(PreviewKind.TEXT)
    page = PreviewPage(
        label=TEXT_LABEL,
        width=width,
        height=height,
        data=TextPageData(original_text=text, edited_text=text),
    )
    return PreviewDocument(kind=PreviewKind.TEXT, pages=(page,), editable=True)


def decode_binary(
    data: bytes, *, config: PreviewConfig, resources: ResourceRegistry
) -> PreviewDocument:
    handle = resources.create(data, BINARY_CONTENT_TYPE)
    width, height = config.page_size(PreviewKind.BINARY)
    page = PreviewPage(
        label=FILE_LABEL,
        width=width,
        height=height,
        data=BinaryPageData(resource_url=handle),
    )
    return PreviewDocument(
        kind=PreviewKind.BINARY, pages=(page,), editable=False, source_handle=handle
    )
