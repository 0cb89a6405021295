from dataclasses import dataclass, field

from docpreview.helpers.data_types import PreviewKind
from docpreview.helpers.util.zip_bomb import DEFAULT_ZIP_BOMB_LIMITS, ZipBombLimits

# Longest side of the preview stage in pixels
MAX_STAGE = 560

MIN_ZOOM = 0.25
MAX_ZOOM = 4.0

# Natural size assumed for pages that do not carry their own dimensions
DEFAULT_PAGE_SIZES: dict[PreviewKind, tuple[int, int]] = {
    PreviewKind.PDF: (595, 842),
    PreviewKind.DOCX: (793, 1122),
    PreviewKind.TEXT: (793, 1122),
    PreviewKind.SPREADSHEET: (1024, 768),
    PreviewKind.BINARY: (800, 600),
    PreviewKind.IMAGE: (800, 600),
}


@dataclass(frozen=True)
class PreviewConfig:
    """Configuration for the preview engine."""

    max_stage: int = MAX_STAGE
    min_zoom: float = MIN_ZOOM
    max_zoom: float = MAX_ZOOM
    page_sizes: dict[PreviewKind, tuple[int, int]] = field(
        default_factory=lambda: dict(DEFAULT_PAGE_SIZES)
    )
    spreadsheet_display_rows: int = 20
    zip_limits: ZipBombLimits = DEFAULT_ZIP_BOMB_LIMITS

    def page_size(self, kind: PreviewKind) -> tuple[int, int]:
        return self.page_sizes.get(kind, DEFAULT_PAGE_SIZES[PreviewKind.BINARY])

    def clamp_zoom(self, value: float) -> float:
        return min(self.max_zoom, max(self.min_zoom, round(value, 2)))


DEFAULT_PREVIEW_CONFIG = PreviewConfig()
