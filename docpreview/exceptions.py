class PreviewError(Exception):
    """Base class for all errors raised by the preview core."""

    def __init__(self, message: str = None, *, cause: Exception = None):
        if message is None:
            message = "Preview failed"
        super().__init__(message)
        self.__cause__ = cause


class FormatError(PreviewError):
    """Raised when a container is malformed (missing EOCD, bad signatures)."""


class ZipBombError(FormatError):
    """Raised when a ZIP container exceeds the configured safety limits."""


class EncryptedFileError(FormatError):
    """Raised when an Office document is password protected."""


class NotFoundError(PreviewError):
    """Raised when a requested part is absent from an archive."""

    def __init__(self, name: str, message: str = None, *, cause: Exception = None):
        self.name = name
        if message is None:
            message = f"Archive entry not found: {name}"
        super().__init__(message, cause=cause)


class DecodeError(PreviewError):
    """Raised when a payload could not be decompressed or verified."""


class UnsupportedOperationError(PreviewError):
    """Raised when saving is requested for a kind without an encoder."""


class ValidationError(PreviewError):
    """Raised when a page index or zoom value is not acceptable."""


class InvalidStateError(PreviewError):
    """Raised when an event is not allowed in the engine's current state."""
