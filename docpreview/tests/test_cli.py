import json

from docpreview.cli import format_file_size, main
from docpreview.helpers.docx_helper import create_document
from docpreview.helpers.pdf_helper import create_pdf, extract_pages
from docpreview.helpers.data_types import PdfPageData
from docpreview.helpers.xlsx_helper import create_workbook


def test_cli_outputs_full_text_by_default(tmp_path, capsys) -> None:
    path = tmp_path / "notes.txt"
    path.write_bytes(b"hello world")

    exit_code = main([str(path)])
    captured = capsys.readouterr()

    assert exit_code == 0
    assert captured.out == "notes.txt: text, 1 page, 11 B\n\n--- Text ---\nhello world\n"


def test_cli_outputs_sheets_and_paragraphs(tmp_path, capsys) -> None:
    workbook = tmp_path / "totals.xlsx"
    workbook.write_bytes(
        create_workbook(["Totals", "Notes"], [[["Region", "Sum"], ["North", "42"]], [["ok"]]])
    )
    letter = tmp_path / "letter.docx"
    letter.write_bytes(create_document("<p>Dear team</p><p>Regards</p>"))

    assert main([str(workbook)]) == 0
    out = capsys.readouterr().out
    assert out.startswith("totals.xlsx: spreadsheet, 2 pages, ")
    assert "--- Totals ---\nRegion\tSum\nNorth\t42\n\n--- Notes ---\nok\n" in out

    assert main([str(letter)]) == 0
    assert "--- Document ---\nDear team\nRegards\n" in capsys.readouterr().out


def test_cli_outputs_json_with_flag(tmp_path, capsys) -> None:
    path = tmp_path / "totals.xlsx"
    path.write_bytes(create_workbook(["Totals"], [[["Region", "Sum"]]]))

    exit_code = main(["--json", str(path)])
    captured = capsys.readouterr()

    assert exit_code == 0
    payload = json.loads(captured.out.strip())
    assert payload["_type"] == "PreviewDocument"
    assert payload["kind"] == "spreadsheet"
    assert payload["pages"][0]["label"] == "Totals"
    assert payload["pages"][0]["data"]["original_grid"] == [["Region", "Sum"]]


def test_cli_resaves_pdf(tmp_path, capsys) -> None:
    path = tmp_path / "report.pdf"
    path.write_bytes(create_pdf([PdfPageData("First", "First"), PdfPageData("x", "Second")]))
    out_path = tmp_path / "copy.pdf"

    exit_code = main([str(path), "--resave", str(out_path)])
    captured = capsys.readouterr()

    assert exit_code == 0
    assert captured.out.startswith("report.pdf: pdf, 1 page, ")
    assert "--- Page 1 ---\nFirst\nSecond\n" in captured.out
    assert extract_pages(out_path.read_bytes()) == [
        PdfPageData("First\nSecond", "First\nSecond")
    ]


def test_cli_resave_unsupported_format(tmp_path, capsys) -> None:
    path = tmp_path / "letter.docx"
    path.write_bytes(create_document("<p>Dear team</p>"))
    out_path = tmp_path / "copy.docx"

    exit_code = main([str(path), "--resave", str(out_path)])
    captured = capsys.readouterr()

    assert exit_code == 1
    assert "not supported" in captured.err
    assert not out_path.exists()


def test_cli_reports_decode_failure(tmp_path, capsys) -> None:
    path = tmp_path / "broken.docx"
    path.write_bytes(b"not a zip file at all")

    exit_code = main([str(path)])
    captured = capsys.readouterr()

    assert exit_code == 1
    assert captured.out == ""
    assert captured.err.startswith("docpreview: ")
    assert "damaged" in captured.err


def test_cli_missing_file(tmp_path, capsys) -> None:
    exit_code = main([str(tmp_path / "missing.txt")])

    assert exit_code == 1
    assert capsys.readouterr().err.startswith("docpreview: ")


def test_cli_rejects_unknown_arguments(tmp_path, capsys) -> None:
    exit_code = main([str(tmp_path / "a.txt"), "--bogus"])

    assert exit_code == 1
    assert "unsupported arguments: --bogus" in capsys.readouterr().err


def test_format_file_size() -> None:
    assert format_file_size(0) == "0 B"
    assert format_file_size(1023) == "1023 B"
    assert format_file_size(1536) == "1.5 KB"
    assert format_file_size(5 * 1024 * 1024) == "5.0 MB"
    assert format_file_size(3 * 1024**3) == "3.00 GB"
