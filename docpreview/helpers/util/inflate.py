import logging
import zlib

logger = logging.getLogger(__name__)

# Negative window bits select a raw DEFLATE stream without zlib header/trailer
RAW_DEFLATE_WBITS = -zlib.MAX_WBITS


def inflate(data: bytes) -> bytes:
    """
    Decompress DEFLATE data, trying a zlib-wrapped stream first and raw
    DEFLATE second.

    Never raises. An empty result means the content is unavailable, not that
    it is empty; callers that know the expected size must treat it as a
    decode failure.
    """
    try:
        return zlib.decompress(data)
    except zlib.error as exc:
        logger.debug("zlib-wrapped inflate failed, retrying as raw deflate: %s", exc)

    try:
        return zlib.decompress(data, RAW_DEFLATE_WBITS)
    except zlib.error as exc:
        logger.warning(
            "Failed to inflate %d bytes with every strategy: %s", len(data), exc
        )
    return b""
