"""
DOCX Paragraph Helper
=====================

Reads paragraph text out of Word packages and writes edited paragraphs back
as a minimal, valid .docx file.

File Format Background
----------------------
A .docx file is a ZIP archive of XML parts (Office Open XML). Only the main
document part is read:

    word/document.xml: Body with paragraphs (w:p) made of runs whose text
    lives in w:t elements.

XML Namespaces:
    - w: http://schemas.openxmlformats.org/wordprocessingml/2006/main

Round Trip
----------
The round trip is lossy. Reading keeps only the concatenated run
text of every paragraph; writing emits one run per paragraph. Styles,
tables, images, headers, numbering and multiple runs are not preserved.

Usage
-----
    >>> from docpreview.helpers.docx_helper import create_document, extract_html
    >>> html = extract_html(create_document("<p>Hello</p><p>World</p>"))
    >>> html
    '<p>Hello</p><p>World</p>'
"""

import datetime
import logging
from html import escape as escape_html

from lxml import html as lxml_html

from docpreview.helpers.util.encryption import ensure_ooxml_package
from docpreview.helpers.util.xml_utils import W_NS, element_text, escape_xml, qn
from docpreview.helpers.util.zip_archive import ZipArchive
from docpreview.helpers.util.zip_bomb import DEFAULT_ZIP_BOMB_LIMITS, ZipBombLimits
from docpreview.helpers.util.zip_builder import ZipBuilder

logger = logging.getLogger(__name__)

DOCUMENT_PART = "word/document.xml"
DOCX_CONTENT_TYPE = (
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document"
)

DOCX_CONTENT_TYPES = """<?xml version="1.0" encoding="UTF-8" standalone="yes"?>
<Types xmlns="http://schemas.openxmlformats.org/package/2006/content-types">
  <Default Extension="rels" ContentType="application/vnd.openxmlformats-package.relationships+xml"/>
  <Default Extension="xml" ContentType="application/xml"/>
  <Override PartName="/word/document.xml" ContentType="application/vnd.openxmlformats-officedocument.wordprocessingml.document.main+xml"/>
  <Override PartName="/word/styles.xml" ContentType="application/vnd.openxmlformats-officedocument.wordprocessingml.styles+xml"/>
  <Override PartName="/docProps/core.xml" ContentType="application/vnd.openxmlformats-package.core-properties+xml"/>
  <Override PartName="/docProps/app.xml" ContentType="application/vnd.openxmlformats-officedocument.extended-properties+xml"/>
</Types>"""

DOCX_RELS = """<?xml version="1.0" encoding="UTF-8" standalone="yes"?>
<Relationships xmlns="http://schemas.openxmlformats.org/package/2006/relationships">
  <Relationship Id="rId1" Type="http://schemas.openxmlformats.org/officeDocument/2006/relationships/officeDocument" Target="word/document.xml"/>
  <Relationship Id="rId2" Type="http://schemas.openxmlformats.org/package/2006/relationships/metadata/core-properties" Target="docProps/core.xml"/>
  <Relationship Id="rId3" Type="http://schemas.openxmlformats.org/officeDocument/2006/relationships/extended-properties" Target="docProps/app.xml"/>
</Relationships>"""

DOCX_APP = """<?xml version="1.0" encoding="UTF-8" standalone="yes"?>
<Properties xmlns="http://schemas.openxmlformats.org/officeDocument/2006/extended-properties" xmlns:vt="http://schemas.openxmlformats.org/officeDocument/2006/docPropsVTypes">
  <Application>docpreview</Application>
  <DocSecurity>0</DocSecurity>
  <ScaleCrop>false</ScaleCrop>
</Properties>"""

DOCX_CORE = """<?xml version="1.0" encoding="UTF-8" standalone="yes"?>
<cp:coreProperties xmlns:cp="http://schemas.openxmlformats.org/package/2006/metadata/core-properties" xmlns:dc="http://purl.org/dc/elements/1.1/" xmlns:dcterms="http://purl.org/dc/terms/" xmlns:dcmitype="http://purl.org/dc/dcmitype/" xmlns:xsi="http://www.w3.org/2001/XMLSchema-instance">
  <dc:creator>docpreview</dc:creator>
  <cp:lastModifiedBy>docpreview</cp:lastModifiedBy>
  <dcterms:created xsi:type="dcterms:W3CDTF">{date}</dcterms:created>
  <dcterms:modified xsi:type="dcterms:W3CDTF">{date}</dcterms:modified>
</cp:coreProperties>"""

DOCX_DOCUMENT_RELS = """<?xml version="1.0" encoding="UTF-8" standalone="yes"?>
<Relationships xmlns="http://schemas.openxmlformats.org/package/2006/relationships">
</Relationships>"""

DOCX_STYLES = """<?xml version="1.0" encoding="UTF-8" standalone="yes"?>
<w:styles xmlns:w="http://schemas.openxmlformats.org/wordprocessingml/2006/main">
  <w:docDefaults>
    <w:rPrDefault>
      <w:rPr>
        <w:rFonts w:ascii="Calibri" w:hAnsi="Calibri" w:cs="Calibri"/>
        <w:sz w:val="22"/>
      </w:rPr>
    </w:rPrDefault>
  </w:docDefaults>
  <w:style w:type="paragraph" w:default="1" w:styleId="Normal">
    <w:name w:val="Normal"/>
  </w:style>
</w:styles>"""


def format_w3cdtf(value: datetime.datetime | None = None) -> str:
    """Timestamp in the W3CDTF form used by docProps/core.xml."""
    if value is None:
        value = datetime.datetime.now(datetime.timezone.utc)
    elif value.tzinfo is not None:
        value = value.astimezone(datetime.timezone.utc)
    return value.strftime("%Y-%m-%dT%H:%M:%SZ")


def extract_html(
    data: bytes, *, limits: ZipBombLimits = DEFAULT_ZIP_BOMB_LIMITS
) -> str:
    """
    Extract the paragraphs of a .docx package as simple HTML.

    Every w:p becomes one ``<p>`` holding the HTML-escaped concatenation of
    its w:t texts. A document without paragraphs yields ``<p></p>``.

    Raises:
        FormatError: Not a ZIP package, encrypted, or malformed XML.
        NotFoundError: The package has no word/document.xml.
        DecodeError: word/document.xml could not be decompressed.
    """
    ensure_ooxml_package(data, "DOCX")
    archive = ZipArchive.from_bytes(data, limits=limits, source="docx")
    root = archive.read_xml_root(DOCUMENT_PART)

    paragraphs = []
    for paragraph in root.iter(qn(W_NS, "p")):
        text = "".join(element_text(run) for run in paragraph.iter(qn(W_NS, "t")))
        paragraphs.append(f"<p>{escape_html(text)}</p>")

    logger.info("Extracted DOCX: %d paragraphs", len(paragraphs))
    return "".join(paragraphs) or "<p></p>"


def _append_text(paragraphs: list[str], text: str | None) -> None:
    if text and text.strip():
        paragraphs.append(text.strip())


def split_paragraphs(markup: str) -> list[str]:
    """
    Flatten edited HTML into plain paragraph strings.

    Top-level ``<p>`` elements contribute their full text content; any other
    top-level node (element or bare text) contributes its stripped text when
    that text is not blank. Never returns an empty list.
    """
    if not markup or not markup.strip():
        return [""]

    paragraphs: list[str] = []
    for node in lxml_html.fragments_fromstring(markup):
        if isinstance(node, str):
            _append_text(paragraphs, node)
            continue
        # Comments and processing instructions have a non-string tag
        if isinstance(node.tag, str):
            if node.tag.lower() == "p":
                paragraphs.append(node.text_content())
            else:
                _append_text(paragraphs, node.text_content())
        _append_text(paragraphs, node.tail)

    return paragraphs or [""]


def build_document_xml(paragraphs: list[str]) -> str:
    body = "\n    ".join(
        f'<w:p><w:r><w:t xml:space="preserve">{escape_xml(text)}</w:t></w:r></w:p>'
        for text in paragraphs
    )
    return f"""<?xml version="1.0" encoding="UTF-8" standalone="yes"?>
<w:document xmlns:w="{W_NS}">
  <w:body>
    {body}
    <w:sectPr/>
  </w:body>
</w:document>"""


def create_document(
    markup: str, *, created: datetime.datetime | None = None
) -> bytes:
    """
    Build a minimal .docx package from edited HTML.

    Args:
        markup: HTML as produced by ``extract_html`` and edited by the user.
        created: Timestamp written to docProps/core.xml (defaults to now).

    Returns:
        Bytes of a stored-only ZIP package.
    """
    paragraphs = split_paragraphs(markup)

    builder = ZipBuilder()
    builder.add_file("[Content_Types].xml", DOCX_CONTENT_TYPES)
    builder.add_file("_rels/.rels", DOCX_RELS)
    builder.add_file("docProps/app.xml", DOCX_APP)
    builder.add_file("docProps/core.xml", DOCX_CORE.format(date=format_w3cdtf(created)))
    builder.add_file("word/_rels/document.xml.rels", DOCX_DOCUMENT_RELS)
    builder.add_file("word/styles.xml", DOCX_STYLES)
    builder.add_file(DOCUMENT_PART, build_document_xml(paragraphs))

    logger.info("Built DOCX with %d paragraphs", len(paragraphs))
    return builder.build()
