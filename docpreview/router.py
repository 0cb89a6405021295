import logging
import mimetypes
import os
from typing import Callable

from docpreview.config import PreviewConfig
from docpreview.helpers.data_types import PreviewDocument, PreviewKind
from docpreview.mime_types import (
    DOCX_EXTENSIONS,
    MIME_TYPE_MAPPING,
    SPREADSHEET_EXTENSIONS,
    TEXT_EXTENSIONS,
)
from docpreview.resources import ResourceRegistry

logger = logging.getLogger(__name__)

PDF_MIME_TYPE = "application/pdf"

Decoder = Callable[..., PreviewDocument]


def get_file_extension(filename: str) -> str:
    """Lower-cased extension without the dot ("" if there is none)."""
    return os.path.splitext(filename or "")[1][1:].lower()


def resolve_preview_kind(
    filename: str, mime_type: str | None = None, blob_type: str | None = None
) -> PreviewKind:
    """
    Decide how a file is previewed.

    A blob whose content type is exactly ``application/pdf`` is always a
    PDF. Otherwise the declared MIME type and the filename extension are
    consulted in order: images, PDF, Word, Excel, text. Anything else is
    previewed as an opaque binary. Without a declared MIME type one is
    guessed from the filename.
    """
    if (blob_type or "").lower() == PDF_MIME_TYPE:
        return PreviewKind.PDF

    extension = get_file_extension(filename)
    mime = (mime_type or "").lower()
    if not mime:
        mime = (mimetypes.guess_type(filename or "")[0] or "").lower()

    if mime.startswith("image/"):
        kind = PreviewKind.IMAGE
    elif mime == PDF_MIME_TYPE or extension == "pdf":
        kind = PreviewKind.PDF
    elif extension in DOCX_EXTENSIONS or "word" in mime:
        kind = PreviewKind.DOCX
    elif extension in SPREADSHEET_EXTENSIONS or "excel" in mime or "sheet" in mime:
        kind = PreviewKind.SPREADSHEET
    elif mime.startswith("text/") or extension in TEXT_EXTENSIONS:
        kind = PreviewKind.TEXT
    else:
        kind = MIME_TYPE_MAPPING.get(mime, PreviewKind.BINARY)

    logger.debug(
        f"Detected preview kind: {kind.value} (MIME: {mime or None}) for file: {filename}"
    )
    return kind


def get_decoder(kind: PreviewKind) -> Decoder:
    """Return the decoder function for a preview kind (lazy import)."""
    if kind == PreviewKind.IMAGE:
        from docpreview.decoders import decode_image

        return decode_image
    elif kind == PreviewKind.PDF:
        from docpreview.decoders import decode_pdf

        return decode_pdf
    elif kind == PreviewKind.DOCX:
        from docpreview.decoders import decode_docx

        return decode_docx
    elif kind == PreviewKind.SPREADSHEET:
        from docpreview.decoders import decode_spreadsheet

        return decode_spreadsheet
    elif kind == PreviewKind.TEXT:
        from docpreview.decoders import decode_text

        return decode_text
    elif kind == PreviewKind.BINARY:
        from docpreview.decoders import decode_binary

        return decode_binary
    else:
        raise RuntimeError(f"No decoder for preview kind: {kind}")


def decode(
    data: bytes,
    kind: PreviewKind,
    *,
    config: PreviewConfig,
    resources: ResourceRegistry,
) -> PreviewDocument:
    return get_decoder(kind)(data, config=config, resources=resources)
