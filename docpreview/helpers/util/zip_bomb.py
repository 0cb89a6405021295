from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Protocol

from docpreview.exceptions import ZipBombError


@dataclass(frozen=True)
class ZipBombLimits:
    """
    Heuristics for rejecting probable ZIP bombs before anything is inflated.

    Previews run in-process, so the defaults are tighter than a batch
    extractor would use while still admitting large real-world workbooks.
    """

    max_entries: int = 10_000
    max_total_uncompressed_bytes: int = 1 * 1024 * 1024 * 1024  # 1 GiB
    max_single_uncompressed_bytes: int = 512 * 1024 * 1024  # 512 MiB
    max_total_compression_ratio: float = 200.0
    max_entry_compression_ratio: float = 500.0


DEFAULT_ZIP_BOMB_LIMITS = ZipBombLimits()


class _SizedEntry(Protocol):
    name: str
    compressed_size: int
    uncompressed_size: int


def _suffix(source: str | None) -> str:
    return f" [{source}]" if source else ""


def validate_entries(
    entries: Iterable[_SizedEntry],
    *,
    limits: ZipBombLimits = DEFAULT_ZIP_BOMB_LIMITS,
    source: str | None = None,
) -> None:
    """
    Validate central-directory sizes against high-confidence ZIP-bomb indicators.

    The sizes are the declared ones, so this is a best-effort DoS mitigation;
    inflating still trusts zlib to stop at the end of the stream.
    """
    entries = list(entries)
    if len(entries) > limits.max_entries:
        raise ZipBombError(
            f"ZIP container has too many entries ({len(entries)} > {limits.max_entries})"
            + _suffix(source)
        )

    total_uncompressed = 0
    total_compressed = 0

    for entry in entries:
        if entry.name.endswith("/"):
            continue

        file_size = entry.uncompressed_size
        compressed_size = entry.compressed_size

        if file_size > limits.max_single_uncompressed_bytes:
            raise ZipBombError(
                f"ZIP entry too large ({file_size} bytes > {limits.max_single_uncompressed_bytes})"
                + _suffix(source)
            )

        if file_size > 0:
            if compressed_size <= 0:
                raise ZipBombError(
                    "ZIP entry has zero compressed size but non-zero uncompressed size"
                    + _suffix(source)
                )
            ratio = file_size / compressed_size
            if ratio > limits.max_entry_compression_ratio:
                raise ZipBombError(
                    f"ZIP entry compression ratio too high ({ratio:.1f} > {limits.max_entry_compression_ratio})"
                    + _suffix(source)
                )

        total_uncompressed += file_size
        total_compressed += compressed_size

        if total_uncompressed > limits.max_total_uncompressed_bytes:
            raise ZipBombError(
                f"ZIP total uncompressed size too large ({total_uncompressed} bytes > {limits.max_total_uncompressed_bytes})"
                + _suffix(source)
            )

    if total_uncompressed > 0:
        total_ratio = total_uncompressed / total_compressed
        if total_ratio > limits.max_total_compression_ratio:
            raise ZipBombError(
                f"ZIP total compression ratio too high ({total_ratio:.1f} > {limits.max_total_compression_ratio})"
                + _suffix(source)
            )
