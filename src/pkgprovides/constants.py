#  Copyright (c) 2025 Tom Villani, Ph.D.
"""Constants and default values for pkg-provides.

This module centralizes the binary layout of the provides database and the
default configuration values used across the package.

Constants are organized by category:
1. Database Format - the legacy BSD ``locate`` bigram encoding
2. Record Layout - how a decoded record maps to package and path
3. Defaults - remote location, local storage and environment variables
"""

from __future__ import annotations

from typing import Literal

# =============================================================================
# Database Format - legacy BSD locate(1) bigram encoding
# =============================================================================

# Absolute value of the largest likely prefix-length difference. A single
# offset byte stores ``delta + OFFSET`` so deltas in [-14, 14] fit in 0..28.
OFFSET = 14

# Control byte announcing that a 4-byte integer delta follows
SWITCH = 30

# Control byte announcing that the next raw byte is an 8-bit literal
UMLAUT = 31

# High bit marking a bigram-table index
PARITY = 0x80

# Printable ASCII literal range; also the legal range for bigram-table bytes
ASCII_MIN = 32
ASCII_MAX = 127

# Number of entries in the bigram table (two bytes each in the header)
NBG = 128

# Width of the integer following a SWITCH byte
INT_SIZE = 4

# Upper bound of the shared prefix length and of a decoded record (MAXPATHLEN)
MAX_PATH = 1024

# Size of the header holding the bigram table
HEADER_SIZE = 2 * NBG

# Read size used when streaming the database
READ_CHUNK_SIZE = 64 * 1024

# =============================================================================
# Record Layout
# =============================================================================

# Separator between package name and file path in a decoded record
RECORD_SEPARATOR = "*"

# Character that switches matching from the basename to the full path
PATH_SEPARATOR = "/"

# Text encoding used to turn decoded record bytes into ``str``
DEFAULT_RECORD_ENCODING = "utf-8"

# =============================================================================
# Defaults
# =============================================================================

DEFAULT_REMOTE_URL = "https://pkg-provides.osorio.me"
DEFAULT_REMOTE_FILENAME = "ports.db.xz"
DEFAULT_DATABASE_PATH = "/var/db/pkg/plugins/provides.db"
DEFAULT_TIMEOUT = 30.0
DEFAULT_USER_AGENT = "pkg-provides/0.7.0 (+https://github.com/rosorio/pkg-provides)"

# Config files searched when no explicit path is given, in priority order
CONFIG_SEARCH_PATHS = [
    "/usr/local/etc/pkg-provides.toml",
    "/usr/local/etc/pkg-provides.yaml",
    "/usr/local/etc/pkg-provides.yml",
    "/usr/local/etc/pkg-provides.json",
]

ENV_CONFIG = "PROVIDES_CONFIG"
ENV_URL = "PROVIDES_URL"
ENV_DB_PATH = "PROVIDES_DB_PATH"
ENV_FETCH_ON_UPDATE = "PROVIDES_FETCH_ON_UPDATE"
ENV_TIMEOUT = "PROVIDES_TIMEOUT"

# Outer compression containers the update step can unpack
CompressionType = Literal["xz", "gzip", "bzip2", "raw"]

COMPRESSION_MAGIC: dict[bytes, CompressionType] = {
    b"\xfd7zXZ\x00": "xz",
    b"\x1f\x8b": "gzip",
    b"BZh": "bzip2",
}
