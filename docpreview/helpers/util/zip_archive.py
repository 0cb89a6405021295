"""
In-memory ZIP archive reader.

Parses an immutable byte buffer into a ``name -> ZipEntry`` index and reads
individual entries on demand. Only what OOXML packages need is supported:

Supported:
- stored (method 0) and DEFLATE (method 8) entries
- UTF-8 (flag bit 11) and CP437 entry names
- CRC-32 verification of every decoded payload

Not supported:
- encrypted entries (ZipCrypto/AES)
- ZIP64 archives
- multi-disk archives

Offsets always point into the archive's own buffer. Entry payloads are
located through the local file header, because the local name/extra lengths
may differ from the ones recorded in the central directory.

The CRC check runs the pure-Python table from ``crc32`` over each part as it
is read, roughly a second per 5 MB of decoded content. Reads are synchronous,
so a large worksheet holds the event loop of an async caller for that long.
"""

from __future__ import annotations

import logging
import struct
from dataclasses import dataclass
from xml.etree.ElementTree import Element as XmlElement

from docpreview.exceptions import DecodeError, FormatError, NotFoundError
from docpreview.helpers.util.crc32 import crc32
from docpreview.helpers.util.inflate import inflate
from docpreview.helpers.util.xml_utils import parse_xml
from docpreview.helpers.util.zip_bomb import (
    DEFAULT_ZIP_BOMB_LIMITS,
    ZipBombLimits,
    validate_entries,
)
from docpreview.helpers.util.zip_constants import (
    CENTRAL_DIRECTORY_HEADER,
    CENTRAL_DIRECTORY_SIGNATURE,
    EOCD_RECORD,
    EOCD_SIGNATURE,
    FLAG_ENCRYPTED,
    FLAG_UTF8,
    LOCAL_HEADER,
    LOCAL_HEADER_SIGNATURE,
    METHOD_DEFLATE,
    METHOD_STORED,
    ZIP64_MARKER,
)

logger = logging.getLogger(__name__)

_EOCD_SIGNATURE_BYTES = struct.pack("<I", EOCD_SIGNATURE)


@dataclass(frozen=True)
class ZipEntry:
    """Central directory metadata for one archive member.

    Attributes:
        name: Path of the member inside the archive
        local_header_offset: Offset of the member's local file header
        compressed_size: Size of the stored payload
        uncompressed_size: Size after decompression
        compression_method: 0 (stored) or 8 (deflate)
        crc32: Checksum of the uncompressed payload
        flags: General purpose bit flags
    """

    name: str
    local_header_offset: int
    compressed_size: int
    uncompressed_size: int
    compression_method: int
    crc32: int = 0
    flags: int = 0

    @property
    def is_encrypted(self) -> bool:
        return bool(self.flags & FLAG_ENCRYPTED)


def _decode_name(raw: bytes, flags: int) -> str:
    if flags & FLAG_UTF8:
        return raw.decode("utf-8", errors="replace")
    try:
        return raw.decode("utf-8")
    except UnicodeDecodeError:
        return raw.decode("cp437")


def _find_eocd(data: bytes) -> int:
    """Scan backward from ``len - 22`` for the EOCD signature."""
    last_start = len(data) - EOCD_RECORD.size
    if last_start < 0:
        raise FormatError("EOCD not found")
    offset = data.rfind(
        _EOCD_SIGNATURE_BYTES, 0, last_start + len(_EOCD_SIGNATURE_BYTES)
    )
    if offset < 0:
        raise FormatError("EOCD not found")
    return offset


class ZipArchive:
    """
    Read-only view over a ZIP archive held in memory.

    Instances are created with ``from_bytes`` and never change afterwards;
    the archive exclusively owns its backing buffer.
    """

    def __init__(self, data: bytes, entries: dict[str, ZipEntry]):
        self._data = data
        self._entries = entries

    @classmethod
    def from_bytes(
        cls,
        data: bytes | bytearray | memoryview,
        *,
        limits: ZipBombLimits = DEFAULT_ZIP_BOMB_LIMITS,
        source: str | None = None,
    ) -> ZipArchive:
        """
        Parse the central directory of ``data``.

        Args:
            data: Complete archive bytes.
            limits: ZIP bomb thresholds applied to the declared entry sizes.
            source: Optional label used in error messages.

        Raises:
            FormatError: EOCD missing, central directory or record corrupt,
                or a ZIP64 archive.
            ZipBombError: Declared sizes exceed ``limits``.
        """
        data = bytes(data)
        eocd_offset = _find_eocd(data)
        (
            _signature,
            _disk,
            _cd_disk,
            _disk_entries,
            total_entries,
            cd_size,
            cd_offset,
            _comment_length,
        ) = EOCD_RECORD.unpack_from(data, eocd_offset)

        if cd_size == ZIP64_MARKER or cd_offset == ZIP64_MARKER:
            raise FormatError("ZIP64 archives are not supported")

        entries: dict[str, ZipEntry] = {}
        cursor = cd_offset
        for _ in range(total_entries):
            try:
                header = CENTRAL_DIRECTORY_HEADER.unpack_from(data, cursor)
            except struct.error as exc:
                raise FormatError("corrupt central directory", cause=exc) from exc

            (
                signature,
                _made_by,
                _needed,
                flags,
                method,
                _time,
                _date,
                checksum,
                compressed_size,
                uncompressed_size,
                name_length,
                extra_length,
                comment_length,
                _disk_start,
                _internal_attr,
                _external_attr,
                local_offset,
            ) = header
            if signature != CENTRAL_DIRECTORY_SIGNATURE:
                raise FormatError("corrupt central directory")

            name_start = cursor + CENTRAL_DIRECTORY_HEADER.size
            raw_name = data[name_start : name_start + name_length]
            if len(raw_name) != name_length:
                raise FormatError("corrupt central directory")

            if ZIP64_MARKER in (compressed_size, uncompressed_size, local_offset):
                raise FormatError("ZIP64 archives are not supported")

            name = _decode_name(raw_name, flags)
            entries[name] = ZipEntry(
                name=name,
                local_header_offset=local_offset,
                compressed_size=compressed_size,
                uncompressed_size=uncompressed_size,
                compression_method=method,
                crc32=checksum,
                flags=flags,
            )
            cursor = name_start + name_length + extra_length + comment_length

        validate_entries(entries.values(), limits=limits, source=source)
        logger.debug("Parsed ZIP central directory with %d entries", len(entries))
        return cls(data, entries)

    @property
    def names(self) -> list[str]:
        return list(self._entries)

    @property
    def entries(self) -> dict[str, ZipEntry]:
        return dict(self._entries)

    def exists(self, name: str) -> bool:
        return name in self._entries

    def get_entry(self, name: str) -> ZipEntry:
        entry = self._entries.get(name)
        if entry is None:
            raise NotFoundError(name)
        return entry

    def _payload(self, entry: ZipEntry) -> bytes:
        try:
            header = LOCAL_HEADER.unpack_from(self._data, entry.local_header_offset)
        except struct.error as exc:
            raise FormatError("corrupt local header", cause=exc) from exc
        if header[0] != LOCAL_HEADER_SIGNATURE:
            raise FormatError("corrupt local header")

        name_length, extra_length = header[9], header[10]
        start = entry.local_header_offset + LOCAL_HEADER.size + name_length + extra_length
        payload = self._data[start : start + entry.compressed_size]
        if len(payload) != entry.compressed_size:
            raise FormatError(f"truncated entry: {entry.name}")
        return payload

    def read_bytes(self, name: str) -> bytes:
        """
        Return the decompressed content of ``name``.

        Raises:
            NotFoundError: ``name`` is not in the archive.
            FormatError: Corrupt local header, encryption or unknown method.
            DecodeError: Inflate failed or the CRC-32 does not match.
        """
        entry = self.get_entry(name)
        if entry.is_encrypted:
            raise FormatError(f"encrypted entries are not supported: {name}")

        payload = self._payload(entry)
        if entry.compression_method == METHOD_STORED:
            content = payload
        elif entry.compression_method == METHOD_DEFLATE:
            content = inflate(payload)
            if not content and entry.uncompressed_size > 0:
                raise DecodeError(f"Could not decompress archive entry {name}")
        else:
            raise FormatError(
                f"unsupported compression method {entry.compression_method}: {name}"
            )

        if crc32(content) != entry.crc32:
            raise DecodeError(f"Checksum mismatch for archive entry {name}")
        return content

    def read_text(self, name: str) -> str:
        try:
            return self.read_bytes(name).decode("utf-8")
        except UnicodeDecodeError as exc:
            raise DecodeError(f"Archive entry {name} is not UTF-8", cause=exc) from exc

    def read_xml_root(self, name: str) -> XmlElement:
        return parse_xml(self.read_bytes(name), name)
