"""
ZIP record layouts shared by the archive reader and builder.

All multi-byte fields are little-endian. Only the 32-bit format is covered;
ZIP64 records are rejected by the reader and never written by the builder.
"""

import struct

# Record signatures
LOCAL_HEADER_SIGNATURE = 0x04034B50  # PK\x03\x04
CENTRAL_DIRECTORY_SIGNATURE = 0x02014B50  # PK\x01\x02
EOCD_SIGNATURE = 0x06054B50  # PK\x05\x06

# Compression methods
METHOD_STORED = 0
METHOD_DEFLATE = 8

# General purpose bit flags
FLAG_ENCRYPTED = 0x0001
FLAG_UTF8 = 0x0800

# Version needed to extract / made by (2.0: deflate, no ZIP64)
ZIP_VERSION = 20

# 32-bit field saturation value that announces a ZIP64 record
ZIP64_MARKER = 0xFFFFFFFF
MAX_ENTRIES = 0xFFFF
MAX_FIELD_VALUE = 0xFFFFFFFF

# DOS date for 1980-01-01 and midnight, the earliest representable timestamp
DOS_EPOCH_DATE = (0 << 9) | (1 << 5) | 1
DOS_EPOCH_TIME = 0

# signature, version, flags, method, time, date, crc, csize, usize, name len, extra len
LOCAL_HEADER = struct.Struct("<IHHHHHIIIHH")

# signature, made by, needed, flags, method, time, date, crc, csize, usize,
# name len, extra len, comment len, disk start, internal attr, external attr, offset
CENTRAL_DIRECTORY_HEADER = struct.Struct("<IHHHHHHIIIHHHHHII")

# signature, disk, cd disk, entries on disk, total entries, cd size, cd offset, comment len
EOCD_RECORD = struct.Struct("<IHHHHIIH")
