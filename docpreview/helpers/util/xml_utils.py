import re
from xml.etree import ElementTree as ET
from xml.etree.ElementTree import Element as XmlElement

from docpreview.exceptions import FormatError

# OOXML namespaces used by the helpers
W_NS = "http://schemas.openxmlformats.org/wordprocessingml/2006/main"
S_NS = "http://schemas.openxmlformats.org/spreadsheetml/2006/main"
R_NS = "http://schemas.openxmlformats.org/officeDocument/2006/relationships"
PKG_REL_NS = "http://schemas.openxmlformats.org/package/2006/relationships"

# Control characters that XML 1.0 does not allow in character data
_INVALID_XML_CHARS = re.compile("[\x00-\x08\x0b\x0c\x0e-\x1f]")


def qn(namespace: str, tag: str) -> str:
    """Clark notation for ``tag`` in ``namespace``."""
    return f"{{{namespace}}}{tag}"


def parse_xml(data: bytes | str, part: str = "") -> XmlElement:
    """Parse an XML part, translating parser errors to FormatError."""
    try:
        return ET.fromstring(data)
    except ET.ParseError as exc:
        raise FormatError(f"Malformed XML in part {part}", cause=exc) from exc


def element_text(element: XmlElement | None) -> str:
    if element is None or element.text is None:
        return ""
    return element.text


def escape_xml(value: str) -> str:
    value = _INVALID_XML_CHARS.sub("", value)
    return (
        value.replace("&", "&amp;")
        .replace("<", "&lt;")
        .replace(">", "&gt;")
        .replace('"', "&quot;")
        .replace("'", "&apos;")
    )
