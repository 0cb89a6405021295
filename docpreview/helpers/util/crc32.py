"""
Table-driven CRC-32 (IEEE 802.3) as used by ZIP local and central headers.

The checksum uses the reflected polynomial 0xEDB88320 with an initial value
and final XOR of 0xFFFFFFFF, so ``crc32(b"123456789") == 0xCBF43926``.
"""

POLYNOMIAL = 0xEDB88320


def _build_table() -> tuple[int, ...]:
    table = []
    for i in range(256):
        c = i
        for _ in range(8):
            c = (c >> 1) ^ POLYNOMIAL if c & 1 else c >> 1
        table.append(c)
    return tuple(table)


CRC32_TABLE = _build_table()


def crc32(data: bytes | bytearray | memoryview, value: int = 0) -> int:
    """
    Compute the CRC-32 of ``data``.

    Args:
        data: Bytes to checksum.
        value: Result of a previous call, to continue a running checksum.

    Returns:
        Unsigned 32-bit checksum.
    """
    crc = value ^ 0xFFFFFFFF
    table = CRC32_TABLE
    for byte in bytes(data):
        crc = (crc >> 8) ^ table[(crc ^ byte) & 0xFF]
    return crc ^ 0xFFFFFFFF
