"""
Minimal ZIP writer.

Accumulates named payloads and emits a valid archive made of local file
headers, one central directory and an EOCD record. Every entry is written
with the stored method; the builder never compresses and never writes ZIP64
or folder records.
"""

import logging

from docpreview.helpers.util.crc32 import crc32
from docpreview.helpers.util.zip_constants import (
    CENTRAL_DIRECTORY_HEADER,
    CENTRAL_DIRECTORY_SIGNATURE,
    DOS_EPOCH_DATE,
    DOS_EPOCH_TIME,
    EOCD_RECORD,
    EOCD_SIGNATURE,
    FLAG_UTF8,
    LOCAL_HEADER,
    LOCAL_HEADER_SIGNATURE,
    MAX_ENTRIES,
    MAX_FIELD_VALUE,
    METHOD_STORED,
    ZIP_VERSION,
)

logger = logging.getLogger(__name__)


class ZipBuilder:
    """Collects files and builds a stored-only ZIP archive.

    ``build`` is a pure function of the files added so far and may be called
    repeatedly; each call returns a new buffer.
    """

    def __init__(self) -> None:
        self._files: list[tuple[str, bytes, int]] = []
        self._names: set[str] = set()

    def __len__(self) -> int:
        return len(self._files)

    def add_file(self, name: str, content: str | bytes | bytearray | memoryview) -> None:
        """
        Append a file to the archive.

        Args:
            name: Path inside the archive, forward slashes only.
            content: Text (encoded as UTF-8) or bytes.

        Raises:
            ValueError: Empty, folder-style or duplicate name.
            TypeError: Unsupported content type.
        """
        if not name or name.endswith("/"):
            raise ValueError(f"Invalid ZIP entry name: {name!r}")
        if name in self._names:
            raise ValueError(f"Duplicate ZIP entry name: {name}")

        if isinstance(content, str):
            data = content.encode("utf-8")
        elif isinstance(content, (bytes, bytearray, memoryview)):
            data = bytes(content)
        else:
            raise TypeError(f"Unsupported ZIP content type: {type(content).__name__}")

        self._files.append((name, data, crc32(data)))
        self._names.add(name)

    def build(self) -> bytes:
        if len(self._files) > MAX_ENTRIES:
            raise ValueError(f"Too many ZIP entries ({len(self._files)} > {MAX_ENTRIES})")

        local_records: list[bytes] = []
        central_records: list[bytes] = []
        offset = 0

        for name, data, checksum in self._files:
            name_bytes = name.encode("utf-8")
            flags = 0 if name.isascii() else FLAG_UTF8
            if len(data) > MAX_FIELD_VALUE or offset > MAX_FIELD_VALUE:
                raise ValueError(f"ZIP entry {name} exceeds the 32-bit format limits")

            local = (
                LOCAL_HEADER.pack(
                    LOCAL_HEADER_SIGNATURE,
                    ZIP_VERSION,
                    flags,
                    METHOD_STORED,
                    DOS_EPOCH_TIME,
                    DOS_EPOCH_DATE,
                    checksum,
                    len(data),
                    len(data),
                    len(name_bytes),
                    0,
                )
                + name_bytes
                + data
            )
            local_records.append(local)

            central = (
                CENTRAL_DIRECTORY_HEADER.pack(
                    CENTRAL_DIRECTORY_SIGNATURE,
                    ZIP_VERSION,
                    ZIP_VERSION,
                    flags,
                    METHOD_STORED,
                    DOS_EPOCH_TIME,
                    DOS_EPOCH_DATE,
                    checksum,
                    len(data),
                    len(data),
                    len(name_bytes),
                    0,
                    0,
                    0,
                    0,
                    0,
                    offset,
                )
                + name_bytes
            )
            central_records.append(central)

            offset += len(local)

        central_offset = offset
        central_directory = b"".join(central_records)
        if central_offset > MAX_FIELD_VALUE:
            raise ValueError("ZIP archive exceeds the 32-bit format limits")

        footer = EOCD_RECORD.pack(
            EOCD_SIGNATURE,
            0,
            0,
            len(self._files),
            len(self._files),
            len(central_directory),
            central_offset,
            0,
        )

        result = b"".join(local_records) + central_directory + footer
        logger.debug(
            "Built ZIP archive with %d entries (%d bytes)", len(self._files), len(result)
        )
        return result
