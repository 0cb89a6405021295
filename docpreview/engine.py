"""
File Preview Engine
===================

Orchestrates "detect kind -> decode -> paginate -> edit -> re-encode -> save"
for one preview slot.

States
------
    IDLE -> LOADING -> READY | ERROR
    READY <-> EDITING
    READY | EDITING -> SAVING -> READY

Every state change goes through ``_dispatch`` and the ``TRANSITIONS`` table;
an event that has no entry for the current state raises
``InvalidStateError``. Loading a new file is allowed from every state and
always starts over in LOADING.

Stale Results
-------------
``load`` bumps a monotonically increasing request token before awaiting the
bytes. When the await returns and the token has moved on (a newer ``load``
or a ``close`` happened meanwhile), the bytes are dropped without being
decoded, so no handle is ever created for them. A slow earlier file can
therefore never replace a faster later one.

Resource Handles
----------------
Image, PDF and binary documents own a handle from the ``ResourceRegistry``.
The handle is revoked exactly once: when the document is superseded by the
next ``load``, or on ``close``.

Zoom
----
``fit_zoom`` fits the current page into the viewport (both sides capped at
``PreviewConfig.max_stage``). Until the user zooms manually, navigation and
viewport changes keep ``zoom`` equal to ``fit_zoom``; PDFs keep the
``ZoomMode.PAGE_FIT`` sentinel instead. ``reset_zoom`` clears the manual
override.

Usage
-----
    >>> engine = FilePreviewEngine(on_save=upload)
    >>> await engine.load(PreviewFile("report.pdf"), download_bytes())
    >>> engine.toggle_editing()
    >>> engine.edit_text("Corrected text")
    >>> saved = engine.save()
"""

import dataclasses
import enum
import inspect
import logging
import math
from typing import Awaitable, Callable, Optional

from docpreview.config import DEFAULT_PREVIEW_CONFIG, PreviewConfig
from docpreview.exceptions import (
    DecodeError,
    EncryptedFileError,
    FormatError,
    InvalidStateError,
    NotFoundError,
    UnsupportedOperationError,
    ValidationError,
    ZipBombError,
)
from docpreview.helpers.data_types import (
    PAGE_DATA_TYPES,
    HtmlPageData,
    PdfPageData,
    PreviewDocument,
    PreviewFile,
    PreviewKind,
    PreviewMessage,
    PreviewPage,
    PreviewPageData,
    SavedFile,
    SpreadsheetPageData,
    TextPageData,
    Zoom,
    ZoomMode,
    reset_page_data,
    spreadsheet_headers,
    spreadsheet_rows,
)
from docpreview.helpers.pdf_helper import (
    PDF_CONTENT_TYPE,
    build_pdf_viewer_url,
    create_pdf,
    extract_pages,
)
from docpreview.resources import InMemoryResourceRegistry, ResourceRegistry
from docpreview.router import decode, resolve_preview_kind

logger = logging.getLogger(__name__)

PREVIEW_FAILED_MESSAGE = "Could not prepare the file preview."
SAVE_FAILED_MESSAGE = "Could not prepare the file changes."
SAVE_UNSUPPORTED_MESSAGE = "Editing is not available for this format."

# Most specific class first
_ERROR_MESSAGES: tuple[tuple[type[Exception], str], ...] = (
    (EncryptedFileError, "The file is password protected."),
    (ZipBombError, "The file is too large to preview."),
    (FormatError, "The file is damaged or in an unsupported format."),
    (NotFoundError, "The file is missing required content."),
    (DecodeError, "The file content could not be decompressed."),
)


class PreviewState(enum.Enum):
    IDLE = "idle"
    LOADING = "loading"
    READY = "ready"
    ERROR = "error"
    EDITING = "editing"
    SAVING = "saving"


class PreviewEvent(enum.Enum):
    LOAD = "load"
    LOADED = "loaded"
    FAILED = "failed"
    START_EDITING = "start-editing"
    STOP_EDITING = "stop-editing"
    SAVE = "save"
    SAVED = "saved"
    SAVE_FAILED = "save-failed"
    CLOSE = "close"


TRANSITIONS: dict[tuple[PreviewState, PreviewEvent], PreviewState] = {
    **{(state, PreviewEvent.LOAD): PreviewState.LOADING for state in PreviewState},
    **{(state, PreviewEvent.CLOSE): PreviewState.IDLE for state in PreviewState},
    (PreviewState.LOADING, PreviewEvent.LOADED): PreviewState.READY,
    (PreviewState.LOADING, PreviewEvent.FAILED): PreviewState.ERROR,
    (PreviewState.READY, PreviewEvent.START_EDITING): PreviewState.EDITING,
    (PreviewState.EDITING, PreviewEvent.STOP_EDITING): PreviewState.READY,
    (PreviewState.READY, PreviewEvent.SAVE): PreviewState.SAVING,
    (PreviewState.EDITING, PreviewEvent.SAVE): PreviewState.SAVING,
    (PreviewState.SAVING, PreviewEvent.SAVED): PreviewState.READY,
    (PreviewState.SAVING, PreviewEvent.SAVE_FAILED): PreviewState.READY,
}

_VIEWING_STATES = (PreviewState.READY, PreviewState.EDITING)


def user_message(exc: BaseException) -> str:
    """Short, human-readable text for a decode failure."""
    for error_class, message in _ERROR_MESSAGES:
        if isinstance(exc, error_class):
            return message
    return PREVIEW_FAILED_MESSAGE


def _default_zoom(document: PreviewDocument) -> Zoom:
    """Zoom a document returns to once the manual override is cleared."""
    if document.kind == PreviewKind.PDF:
        return ZoomMode.PAGE_FIT
    return document.fit_zoom


def _require_finite(value: object, what: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValidationError(f"{what} must be a number, got {value!r}")
    if not math.isfinite(value):
        raise ValidationError(f"{what} must be finite, got {value!r}")
    return float(value)


class FilePreviewEngine:
    """
    State machine driving the preview of one file at a time.

    Args:
        config: Zoom bounds, page sizes and ZIP limits.
        resources: Registry owning decoded-byte handles.
        on_message: Receives a ``PreviewMessage`` for every user-facing failure.
        on_save: Receives the ``SavedFile`` produced by ``save``.
    """

    def __init__(
        self,
        *,
        config: PreviewConfig = DEFAULT_PREVIEW_CONFIG,
        resources: Optional[ResourceRegistry] = None,
        on_message: Optional[Callable[[PreviewMessage], None]] = None,
        on_save: Optional[Callable[[SavedFile], None]] = None,
    ):
        self.config = config
        self.resources = resources if resources is not None else InMemoryResourceRegistry()
        self._on_message = on_message
        self._on_save = on_save

        self._state = PreviewState.IDLE
        self._token = 0
        self._file: Optional[PreviewFile] = None
        self._document: Optional[PreviewDocument] = None
        self._error: Optional[str] = None
        self._manual_zoom = False
        self._viewport: Optional[tuple[float, float]] = None

    # ------------------------------------------------------------------
    # Read-only state
    # ------------------------------------------------------------------

    @property
    def state(self) -> PreviewState:
        return self._state

    @property
    def document(self) -> Optional[PreviewDocument]:
        return self._document

    @property
    def file(self) -> Optional[PreviewFile]:
        return self._file

    @property
    def error(self) -> Optional[str]:
        return self._error

    @property
    def request_token(self) -> int:
        return self._token

    @property
    def is_editing(self) -> bool:
        return self._state == PreviewState.EDITING

    @property
    def manual_zoom(self) -> bool:
        return self._manual_zoom

    @property
    def current_page(self) -> Optional[PreviewPage]:
        return self._document.page if self._document is not None else None

    @property
    def viewer_url(self) -> Optional[str]:
        """PDF viewer URL for the current page and zoom, if a PDF is open."""
        document = self._document
        if document is None or document.kind != PreviewKind.PDF:
            return None
        if not document.source_handle:
            return None
        return build_pdf_viewer_url(
            document.source_handle, document.current_page, document.zoom
        )

    def spreadsheet_headers(self) -> list[str]:
        return spreadsheet_headers(self._current_sheet())

    def spreadsheet_rows(self) -> list[list[str]]:
        return spreadsheet_rows(
            self._current_sheet(), limit=self.config.spreadsheet_display_rows
        )

    def _current_sheet(self) -> Optional[SpreadsheetPageData]:
        page = self.current_page
        if page is None or not isinstance(page.data, SpreadsheetPageData):
            return None
        return page.data

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def _target(self, event: PreviewEvent) -> PreviewState:
        target = TRANSITIONS.get((self._state, event))
        if target is None:
            raise InvalidStateError(
                f"Cannot {event.value} while {self._state.value}"
            )
        return target

    def _dispatch(self, event: PreviewEvent) -> None:
        target = self._target(event)
        logger.debug(f"{self._state.value} --{event.value}--> {target.value}")
        self._state = target

    def _notify(self, text: str) -> None:
        if self._on_message is not None:
            self._on_message(PreviewMessage(type="error", text=text))

    def _release(self, document: Optional[PreviewDocument]) -> None:
        if document is not None and document.source_handle:
            self.resources.revoke(document.source_handle)

    def _require_document(self) -> PreviewDocument:
        if self._state not in _VIEWING_STATES or self._document is None:
            raise InvalidStateError(f"No document to show while {self._state.value}")
        return self._document

    def _require_editing(self) -> PreviewDocument:
        if self._state != PreviewState.EDITING or self._document is None:
            raise InvalidStateError(f"Cannot edit while {self._state.value}")
        return self._document

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    async def load(
        self,
        file: PreviewFile,
        source: bytes | Awaitable[bytes],
        *,
        blob_type: Optional[str] = None,
    ) -> Optional[PreviewDocument]:
        """
        Decode ``file`` and show it.

        ``source`` is either the bytes themselves or an awaitable producing
        them. Returns the new document, or ``None`` when decoding failed (the
        engine is then in ERROR) or the request went stale.
        """
        self._dispatch(PreviewEvent.LOAD)
        self._token += 1
        token = self._token

        self._release(self._document)
        self._document = None
        self._file = file
        self._error = None
        self._manual_zoom = False

        try:
            data = await source if inspect.isawaitable(source) else source
            if token != self._token:
                logger.warning(
                    f"Discarding stale preview of [{file.filename}] (request {token})"
                )
                return None
            kind = resolve_preview_kind(file.filename, file.mime_type, blob_type)
            document = decode(
                bytes(data), kind, config=self.config, resources=self.resources
            )
        except Exception as exc:
            if token != self._token:
                logger.warning(
                    f"Ignoring failure of stale preview [{file.filename}]: {exc}"
                )
                return None
            self._fail(exc)
            return None

        self._document = self._refit(document)
        self._dispatch(PreviewEvent.LOADED)
        logger.info(
            "Prepared %s preview of [%s]: %d pages",
            document.kind.value,
            file.filename,
            len(document.pages),
        )
        return self._document

    def _fail(self, exc: Exception) -> None:
        """Move to ERROR; must be called while ``exc`` is being handled."""
        message = user_message(exc)
        self._document = None
        self._error = message
        self._dispatch(PreviewEvent.FAILED)
        logger.exception(f"Failed to prepare preview of [{self._file.filename}]")
        self._notify(message)

    def close(self) -> None:
        """Tear down the preview, releasing the document's handle."""
        self._token += 1
        self._release(self._document)
        self._document = None
        self._file = None
        self._error = None
        self._manual_zoom = False
        self._dispatch(PreviewEvent.CLOSE)

    # ------------------------------------------------------------------
    # Editing
    # ------------------------------------------------------------------

    def toggle_editing(self) -> bool:
        """
        Switch between READY and EDITING.

        Does nothing for documents that are not editable. Returns whether
        the engine is editing afterwards.
        """
        if self._state == PreviewState.EDITING:
            self._dispatch(PreviewEvent.STOP_EDITING)
            return False

        self._target(PreviewEvent.START_EDITING)
        if self._document is None or not self._document.editable:
            logger.debug("Ignoring edit toggle for a read-only document")
            return False
        self._ensure_pdf_pages()
        self._dispatch(PreviewEvent.START_EDITING)
        return True

    def _ensure_pdf_pages(self) -> None:
        document = self._document
        if document is None or document.kind != PreviewKind.PDF or document.pages:
            return
        extracted = extract_pages(self.resources.read(document.source_handle))
        if not extracted:
            logger.info("PDF has no extractable text; starting from a blank page")
            extracted = [PdfPageData(original_text="", edited_text="")]
        width, height = self.config.page_size(PreviewKind.PDF)
        pages = tuple(
            PreviewPage(label=f"Page {number}", width=width, height=height, data=data)
            for number, data in enumerate(extracted, start=1)
        )
        self._document = self._refit(
            dataclasses.replace(document, pages=pages, current_page=0)
        )

    def update_page_data(self, index: int, data: PreviewPageData) -> PreviewDocument:
        """Replace the page data of page ``index`` with an edited variant."""
        document = self._require_editing()
        self._check_index(document, index)
        expected = PAGE_DATA_TYPES[document.kind]
        if type(data) is not expected:
            raise ValidationError(
                f"{document.kind.value} pages hold {expected.__name__}, "
                f"got {type(data).__name__}"
            )
        page = dataclasses.replace(document.pages[index], data=data)
        return self._replace_page(document, index, page)

    def rename_page(self, index: int, label: str) -> PreviewDocument:
        document = self._require_editing()
        self._check_index(document, index)
        page = dataclasses.replace(document.pages[index], label=label)
        return self._replace_page(document, index, page)

    def edit_text(self, text: str) -> PreviewDocument:
        """Set the edited text of the current text or PDF page."""
        data = self._current_data((TextPageData, PdfPageData))
        return self.update_page_data(
            self._document.current_page, dataclasses.replace(data, edited_text=text)
        )

    def edit_html(self, html: str) -> PreviewDocument:
        data = self._current_data((HtmlPageData,))
        return self.update_page_data(
            self._document.current_page, dataclasses.replace(data, edited_html=html)
        )

    def edit_cell(self, row: int, column: int, value: str) -> PreviewDocument:
        """Set one cell of the current sheet, growing the edited grid as needed."""
        data = self._current_data((SpreadsheetPageData,))
        if row < 0 or column < 0:
            raise ValidationError(f"Cell position out of range: ({row}, {column})")
        grid = [list(cells) for cells in data.edited_grid]
        while len(grid) <= row:
            grid.append([])
        cells = grid[row]
        cells.extend([""] * (column + 1 - len(cells)))
        cells[column] = value
        return self.update_page_data(
            self._document.current_page, dataclasses.replace(data, edited_grid=grid)
        )

    def reset_edits(self) -> PreviewDocument:
        """Restore every page's edit buffer and clear the manual zoom flag."""
        document = self._require_document()
        pages = tuple(
            dataclasses.replace(page, data=reset_page_data(page.data))
            for page in document.pages
        )
        self._manual_zoom = False
        self._document = self._refit(
            dataclasses.replace(document, pages=pages, zoom=_default_zoom(document))
        )
        return self._document

    def _current_data(self, expected: tuple[type, ...]):
        document = self._require_editing()
        page = document.page
        if page is None or not isinstance(page.data, expected):
            raise ValidationError(
                f"Current page of a {document.kind.value} document cannot be edited this way"
            )
        return page.data

    def _check_index(self, document: PreviewDocument, index: int) -> None:
        if isinstance(index, bool) or not isinstance(index, int):
            raise ValidationError(f"Page index must be an integer, got {index!r}")
        if not 0 <= index < len(document.pages):
            raise ValidationError(
                f"Page index {index} out of range (0..{len(document.pages) - 1})"
            )

    def _replace_page(
        self, document: PreviewDocument, index: int, page: PreviewPage
    ) -> PreviewDocument:
        pages = document.pages[:index] + (page,) + document.pages[index + 1 :]
        self._document = dataclasses.replace(document, pages=pages)
        return self._document

    # ------------------------------------------------------------------
    # Navigation and zoom
    # ------------------------------------------------------------------

    def go_to_page(self, index: int) -> PreviewDocument:
        """Show page ``index``, clamped into the document's page range."""
        self._require_document()
        if isinstance(index, bool) or not isinstance(index, int):
            raise ValidationError(f"Page index must be an integer, got {index!r}")
        self._ensure_pdf_pages()
        document = self._document
        bounded = min(max(index, 0), len(document.pages) - 1)
        if bounded == document.current_page:
            return document
        self._document = self._refit(
            dataclasses.replace(document, current_page=bounded)
        )
        return self._document

    def go_to_page_number(self, value: int | str) -> PreviewDocument:
        """Navigate from 1-based user input such as a page number field."""
        try:
            number = int(str(value).strip())
        except ValueError as exc:
            raise ValidationError(f"Not a page number: {value!r}", cause=exc) from exc
        return self.go_to_page(number - 1)

    def next_page(self) -> PreviewDocument:
        return self.go_to_page(self._require_document().current_page + 1)

    def previous_page(self) -> PreviewDocument:
        return self.go_to_page(self._require_document().current_page - 1)

    def zoom_by(self, delta: float) -> PreviewDocument:
        document = self._require_document()
        delta = _require_finite(delta, "Zoom step")
        return self._set_manual_zoom(document, document.numeric_zoom + delta)

    def set_zoom(self, value: float) -> PreviewDocument:
        document = self._require_document()
        value = _require_finite(value, "Zoom")
        return self._set_manual_zoom(document, value)

    def _set_manual_zoom(self, document: PreviewDocument, value: float) -> PreviewDocument:
        self._manual_zoom = True
        self._document = dataclasses.replace(
            document, zoom=self.config.clamp_zoom(value)
        )
        return self._document

    def reset_zoom(self) -> PreviewDocument:
        """Drop the manual zoom and fit the page again."""
        document = self._require_document()
        self._manual_zoom = False
        self._document = self._refit(
            dataclasses.replace(document, zoom=_default_zoom(document))
        )
        return self._document

    def set_viewport(self, width: float, height: float) -> Optional[PreviewDocument]:
        """Record the stage size used to compute the fit zoom."""
        width = _require_finite(width, "Viewport width")
        height = _require_finite(height, "Viewport height")
        if width < 0 or height < 0:
            raise ValidationError(f"Viewport size must not be negative: {width}x{height}")
        self._viewport = (width, height)
        if self._document is not None:
            self._document = self._refit(self._document)
        return self._document

    def _fit_zoom(self, document: PreviewDocument) -> Optional[float]:
        if self._viewport is None:
            return None
        page = document.page
        if page is not None:
            page_width, page_height = page.width, page.height
        else:
            page_width, page_height = self.config.page_size(document.kind)
        width = min(self._viewport[0], self.config.max_stage)
        height = min(self._viewport[1], self.config.max_stage)
        if not width or not height or not page_width or not page_height:
            return None
        fit = min(width / page_width, height / page_height)
        if not math.isfinite(fit) or fit <= 0:
            return None
        return fit

    def _refit(self, document: PreviewDocument) -> PreviewDocument:
        fit = self._fit_zoom(document)
        if fit is None:
            fit = document.fit_zoom
        zoom = document.zoom
        if not self._manual_zoom and not isinstance(zoom, ZoomMode):
            zoom = fit
        return dataclasses.replace(document, fit_zoom=fit, zoom=zoom)

    # ------------------------------------------------------------------
    # Saving
    # ------------------------------------------------------------------

    def save(self) -> SavedFile:
        """
        Re-encode the edited pages and hand the result to ``on_save``.

        Only PDF documents have an encoder; any other kind raises
        ``UnsupportedOperationError``.
        """
        document = self._require_document()
        if document.kind != PreviewKind.PDF:
            self._notify(SAVE_UNSUPPORTED_MESSAGE)
            raise UnsupportedOperationError(
                f"Saving {document.kind.value} documents is not supported"
            )

        self._ensure_pdf_pages()
        self._dispatch(PreviewEvent.SAVE)
        try:
            pages = [page.data for page in self._document.pages]
            saved = SavedFile(
                filename=self._file.filename,
                content_type=PDF_CONTENT_TYPE,
                data=create_pdf(pages),
            )
        except Exception:
            self._dispatch(PreviewEvent.SAVE_FAILED)
            logger.exception(f"Failed to encode [{self._file.filename}]")
            self._notify(SAVE_FAILED_MESSAGE)
            raise
        self._dispatch(PreviewEvent.SAVED)

        logger.info(f"Saved [{saved.filename}]: {len(saved.data)} bytes")
        if self._on_save is not None:
            self._on_save(saved)
        return saved

