"""
Preview data model.

Page payloads form a closed union of five frozen dataclasses. A
``PreviewDocument`` is never mutated in place; every navigation, zoom or
edit produces a new instance via ``dataclasses.replace``.
"""

import enum
import typing
from dataclasses import dataclass, field
from typing import Optional, Union

Grid = tuple[tuple[str, ...], ...]


class PreviewKind(str, enum.Enum):
    IMAGE = "image"
    PDF = "pdf"
    DOCX = "docx"
    SPREADSHEET = "spreadsheet"
    TEXT = "text"
    BINARY = "binary"


class ZoomMode(str, enum.Enum):
    """Named zoom modes understood by the PDF viewer."""

    PAGE_FIT = "page-fit"
    AUTO = "auto"
    PAGE_WIDTH = "page-width"


Zoom = Union[float, ZoomMode]


def to_grid(rows: typing.Iterable[typing.Iterable[str]]) -> Grid:
    return tuple(tuple(row) for row in rows)


@dataclass(frozen=True)
class TextPageData:
    original_text: str
    edited_text: str


@dataclass(frozen=True)
class HtmlPageData:
    original_html: str
    edited_html: str


@dataclass(frozen=True)
class SpreadsheetPageData:
    original_grid: Grid
    edited_grid: Grid

    def __post_init__(self):
        # Accept lists from callers but keep the stored grids immutable
        object.__setattr__(self, "original_grid", to_grid(self.original_grid))
        object.__setattr__(self, "edited_grid", to_grid(self.edited_grid))


@dataclass(frozen=True)
class PdfPageData:
    original_text: str
    edited_text: str


@dataclass(frozen=True)
class BinaryPageData:
    resource_url: Optional[str] = None


PreviewPageData = Union[
    TextPageData, HtmlPageData, SpreadsheetPageData, PdfPageData, BinaryPageData
]

# Page data variant expected for every kind
PAGE_DATA_TYPES: dict[PreviewKind, type] = {
    PreviewKind.IMAGE: BinaryPageData,
    PreviewKind.PDF: PdfPageData,
    PreviewKind.DOCX: HtmlPageData,
    PreviewKind.SPREADSHEET: SpreadsheetPageData,
    PreviewKind.TEXT: TextPageData,
    PreviewKind.BINARY: BinaryPageData,
}


def reset_page_data(data: PreviewPageData) -> PreviewPageData:
    """Return ``data`` with its edit buffer restored from the original."""
    if isinstance(data, (TextPageData, PdfPageData)):
        return type(data)(
            original_text=data.original_text, edited_text=data.original_text
        )
    if isinstance(data, HtmlPageData):
        return HtmlPageData(
            original_html=data.original_html, edited_html=data.original_html
        )
    if isinstance(data, SpreadsheetPageData):
        return SpreadsheetPageData(
            original_grid=data.original_grid, edited_grid=data.original_grid
        )
    if isinstance(data, BinaryPageData):
        return data
    raise TypeError(f"Unknown page data type: {type(data).__name__}")


@dataclass(frozen=True)
class PreviewPage:
    label: str
    width: float
    height: float
    data: PreviewPageData


@dataclass(frozen=True)
class PreviewDocument:
    """
    A decoded file ready for display.

    Attributes:
        kind: Preview kind the file was decoded as.
        pages: Ordered pages; empty only for a PDF whose text has not been
            extracted yet.
        current_page: Index into ``pages``.
        zoom: Numeric factor or a named ``ZoomMode``.
        fit_zoom: Factor that fits the current page into the viewport.
        editable: Whether the engine may enter editing for this document.
        source_handle: Resource URL owning the decoded bytes, if any.
    """

    kind: PreviewKind
    pages: tuple[PreviewPage, ...] = field(default_factory=tuple)
    current_page: int = 0
    zoom: Zoom = 1.0
    fit_zoom: float = 1.0
    editable: bool = False
    source_handle: Optional[str] = None

    @property
    def page(self) -> Optional[PreviewPage]:
        if 0 <= self.current_page < len(self.pages):
            return self.pages[self.current_page]
        return None

    @property
    def numeric_zoom(self) -> float:
        return self.zoom if isinstance(self.zoom, (int, float)) else self.fit_zoom


@dataclass(frozen=True)
class SavedFile:
    """Re-encoded file handed to the upload collaborator."""

    filename: str
    content_type: str
    data: bytes = field(repr=False)


@dataclass(frozen=True)
class PreviewFile:
    """Descriptor of the file being previewed."""

    filename: str
    mime_type: str = ""
    size: int = 0


@dataclass(frozen=True)
class PreviewMessage:
    """Notification for the toast sink."""

    type: str
    text: str


def column_name(index: int) -> str:
    """Spreadsheet column letters for a 1-based column ``index``."""
    name = ""
    current = index
    while current > 0:
        remainder = (current - 1) % 26
        name = chr(65 + remainder) + name
        current = (current - 1) // 26
    return name


def spreadsheet_column_count(grid: Grid) -> int:
    return max((len(row) for row in grid), default=0)


def spreadsheet_headers(data: Optional[SpreadsheetPageData]) -> list[str]:
    """Column letters for the widest row of the edited grid."""
    if data is None:
        return []
    return [
        column_name(i + 1) for i in range(spreadsheet_column_count(data.edited_grid))
    ]


def spreadsheet_rows(
    data: Optional[SpreadsheetPageData], limit: int = 20
) -> list[list[str]]:
    """First ``limit`` rows of the edited grid padded to a rectangle."""
    if data is None:
        return []
    width = spreadsheet_column_count(data.edited_grid)
    return [
        list(row) + [""] * (width - len(row)) for row in data.edited_grid[:limit]
    ]
