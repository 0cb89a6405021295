from docpreview.helpers.data_types import PreviewKind

MIME_TYPE_MAPPING = {
    # Modern MS Office
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document": PreviewKind.DOCX,
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet": PreviewKind.SPREADSHEET,
    # Legacy MS Office (rejected by the decoder with a readable message)
    "application/msword": PreviewKind.DOCX,
    "application/vnd.ms-excel": PreviewKind.SPREADSHEET,
    # OpenDocument formats
    "application/vnd.oasis.opendocument.text": PreviewKind.DOCX,
    "application/vnd.oasis.opendocument.spreadsheet": PreviewKind.SPREADSHEET,
    # Plain text variants outside text/*
    "application/json": PreviewKind.TEXT,
    "application/xml": PreviewKind.TEXT,
    "application/csv": PreviewKind.TEXT,
    "application/javascript": PreviewKind.TEXT,
    "application/x-yaml": PreviewKind.TEXT,
    # Other formats
    "application/pdf": PreviewKind.PDF,
}

DOCX_EXTENSIONS = frozenset(("doc", "docx", "odt"))
SPREADSHEET_EXTENSIONS = frozenset(("xls", "xlsx", "ods"))
TEXT_EXTENSIONS = frozenset(
    (
        "txt",
        "md",
        "json",
        "xml",
        "yml",
        "yaml",
        "csv",
        "log",
        "ini",
        "html",
        "css",
        "js",
        "ts",
    )
)
