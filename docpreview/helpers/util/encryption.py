import io

import olefile

from docpreview.exceptions import EncryptedFileError, FormatError

# Streams that Office writes into the OLE wrapper of a password-protected package
_ENCRYPTION_STREAMS = ("EncryptionInfo", "EncryptedPackage", "DataSpaces")


def _has_ole_encryption_stream(ole: olefile.OleFileIO) -> bool:
    for stream in _ENCRYPTION_STREAMS:
        if ole.exists(stream):
            return True
    return False


def is_ole_container(data: bytes) -> bool:
    return olefile.isOleFile(io.BytesIO(data))


def is_ooxml_encrypted(data: bytes) -> bool:
    if not is_ole_container(data):
        return False
    with olefile.OleFileIO(io.BytesIO(data)) as ole:
        return _has_ole_encryption_stream(ole)


def ensure_ooxml_package(data: bytes, label: str) -> None:
    """
    Reject OLE compound files before they reach the ZIP reader.

    Encrypted OOXML and legacy binary Office files (.doc/.xls) are OLE
    containers, so the ZIP reader would only report a missing EOCD.

    Raises:
        EncryptedFileError: The package is password protected.
        FormatError: The file is a legacy binary Office document or a
            damaged OLE container.
    """
    if not is_ole_container(data):
        return
    try:
        encrypted = is_ooxml_encrypted(data)
    except OSError as exc:
        raise FormatError(f"{label} is a damaged OLE compound file", cause=exc) from exc
    if encrypted:
        raise EncryptedFileError(f"{label} is encrypted or password-protected")
    raise FormatError(f"{label} is a legacy binary Office file, not an OOXML package")
