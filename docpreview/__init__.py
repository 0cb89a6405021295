"""
docpreview: In-process document preview and edit core.

Detects how an uploaded file should be previewed, decodes it (ZIP, Word and
Excel packages, PDF content streams, images, text), paginates it, tracks
navigation, zoom and page-local edits, and re-encodes edited pages back into
a file of the original container format.
"""

import asyncio
from pathlib import Path

from docpreview.config import DEFAULT_PREVIEW_CONFIG, PreviewConfig
from docpreview.engine import FilePreviewEngine, PreviewEvent, PreviewState
from docpreview.exceptions import (
    DecodeError,
    EncryptedFileError,
    FormatError,
    InvalidStateError,
    NotFoundError,
    PreviewError,
    UnsupportedOperationError,
    ValidationError,
    ZipBombError,
)
from docpreview.helpers.data_types import (
    PreviewDocument,
    PreviewFile,
    PreviewKind,
    PreviewMessage,
    PreviewPage,
    SavedFile,
    ZoomMode,
)
from docpreview.resources import InMemoryResourceRegistry, ResourceRegistry
from docpreview.router import decode, resolve_preview_kind

__version__ = "0.3.0"


def read_bytes(
    data: bytes,
    filename: str,
    mime_type: str = "",
    *,
    config: PreviewConfig | None = None,
) -> PreviewDocument:
    """
    Decode ``data`` outside of any engine and return its document.

    Handles created for image, PDF and binary content live in a throwaway
    in-memory registry. Raises the decoder's ``PreviewError`` instead of
    moving into an error state.
    """
    kind = resolve_preview_kind(filename, mime_type)
    return decode(
        data,
        kind,
        config=config or DEFAULT_PREVIEW_CONFIG,
        resources=InMemoryResourceRegistry(),
    )


def read_file(path: str | Path, mime_type: str = "") -> PreviewDocument:
    """
    Read and decode a file from disk.

    Example:
        >>> import docpreview
        >>> document = docpreview.read_file("report.docx")
        >>> document.kind, len(document.pages)
        (<PreviewKind.DOCX: 'docx'>, 1)
    """
    path = Path(path)
    with open(path, "rb") as f:
        return read_bytes(f.read(), path.name, mime_type)


def open_preview(
    path: str | Path, mime_type: str = "", **engine_options
) -> FilePreviewEngine:
    """Create an engine and load ``path`` into it on a fresh event loop."""
    path = Path(path)
    engine = FilePreviewEngine(**engine_options)
    data = path.read_bytes()
    asyncio.run(
        engine.load(
            PreviewFile(filename=path.name, mime_type=mime_type, size=len(data)), data
        )
    )
    return engine


__all__ = [
    # Version
    "__version__",
    # Main functions
    "read_file",
    "read_bytes",
    "open_preview",
    "resolve_preview_kind",
    # Engine
    "FilePreviewEngine",
    "PreviewConfig",
    "PreviewEvent",
    "PreviewState",
    "InMemoryResourceRegistry",
    "ResourceRegistry",
    # Data model
    "PreviewDocument",
    "PreviewFile",
    "PreviewKind",
    "PreviewMessage",
    "PreviewPage",
    "SavedFile",
    "ZoomMode",
    # Errors
    "PreviewError",
    "FormatError",
    "ZipBombError",
    "EncryptedFileError",
    "NotFoundError",
    "DecodeError",
    "UnsupportedOperationError",
    "ValidationError",
    "InvalidStateError",
]
