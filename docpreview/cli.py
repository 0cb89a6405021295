from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Sequence

from docpreview.engine import FilePreviewEngine, PreviewState
from docpreview.helpers.data_types import (
    BinaryPageData,
    HtmlPageData,
    PdfPageData,
    PreviewFile,
    PreviewKind,
    PreviewPage,
    SpreadsheetPageData,
    TextPageData,
)
from docpreview.helpers.docx_helper import split_paragraphs
from docpreview.helpers.serialization import serialize_document


def format_file_size(size: float) -> str:
    """Human-readable size: whole bytes, one decimal for KB/MB, two for GB."""
    if size < 1024:
        return f"{size:.0f} B"
    kb = size / 1024
    if kb < 1024:
        return f"{kb:.1f} KB"
    mb = kb / 1024
    if mb < 1024:
        return f"{mb:.1f} MB"
    return f"{mb / 1024:.2f} GB"


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="docpreview",
        description="Decode a file the way the preview engine does and print its pages.",
    )
    parser.add_argument(
        "path",
        type=Path,
        help="Path to the file to preview.",
    )
    parser.add_argument(
        "--mime",
        default="",
        help="Declared MIME type (guessed from the file name when omitted).",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Emit the decoded document as JSON instead of plain text.",
    )
    parser.add_argument(
        "--resave",
        type=Path,
        metavar="OUT",
        help="Re-encode the decoded pages and write them to OUT (PDF only).",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Log decoding steps to stderr.",
    )
    return parser


def _page_text(page: PreviewPage) -> str:
    data = page.data
    if isinstance(data, (TextPageData, PdfPageData)):
        return data.edited_text
    if isinstance(data, HtmlPageData):
        return "\n".join(split_paragraphs(data.edited_html))
    if isinstance(data, SpreadsheetPageData):
        return "\n".join("\t".join(row) for row in data.edited_grid)
    if isinstance(data, BinaryPageData):
        return f"[{page.width}x{page.height} binary content]"
    raise TypeError(f"Unknown page data type: {type(data).__name__}")


def _serialize_full_text(engine: FilePreviewEngine, size: int) -> str:
    document = engine.document
    pages = document.pages
    header = (
        f"{engine.file.filename}: {document.kind.value}, "
        f"{len(pages)} page{'s' if len(pages) != 1 else ''}, {format_file_size(size)}"
    )
    blocks = [header]
    for page in pages:
        blocks.append(f"--- {page.label} ---\n{_page_text(page).rstrip()}")
    return "\n\n".join(blocks)


async def _load(engine: FilePreviewEngine, path: Path, mime: str) -> int:
    data = path.read_bytes()
    await engine.load(PreviewFile(filename=path.name, mime_type=mime, size=len(data)), data)
    return len(data)


def main(argv: Sequence[str] | None = None) -> int:
    parser = _build_parser()
    try:
        args, unknown = parser.parse_known_args(argv)
    except SystemExit as exc:
        code = exc.code if isinstance(exc.code, int) else 1
        return code

    if unknown:
        unknown_str = " ".join(unknown)
        print(
            f"docpreview: warning: unsupported arguments: {unknown_str}",
            file=sys.stderr,
        )
        return 1

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, stream=sys.stderr)

    engine = FilePreviewEngine()
    try:
        size = asyncio.run(_load(engine, args.path, args.mime))
        if engine.state == PreviewState.ERROR:
            raise RuntimeError(engine.error)
        if engine.document.kind == PreviewKind.PDF:
            # Materialize the text chunks so they can be printed or re-saved
            engine.go_to_page(0)
        if args.resave is not None:
            saved = engine.save()
            args.resave.write_bytes(saved.data)
        if args.json:
            json.dump(serialize_document(engine.document), sys.stdout)
            sys.stdout.write("\n")
        else:
            sys.stdout.write(_serialize_full_text(engine, size))
            sys.stdout.write("\n")
        return 0
    except Exception as exc:
        print(f"docpreview: {exc}", file=sys.stderr)
        return 1
    finally:
        engine.close()


if __name__ == "__main__":
    raise SystemExit(main())
