"""Test utilities for the pkg-provides test suite.

The library only decodes databases, so the tests build their input with the
small encoder below. It follows the same format as the database generator:
front compression against the previous record, bigram substitution and
UMLAUT escapes for bytes outside printable ASCII.
"""

from __future__ import annotations

import sys

from pkgprovides.bigram import BigramTable
from pkgprovides.constants import ASCII_MIN, OFFSET, PARITY, SWITCH, UMLAUT

# Pairs common in file paths, used as the default bigram table
DEFAULT_BIGRAMS = ["/u", "sr", "lo", "ca", "l/", "bi", "n/", "li", "b/", "sh", "ar", "e/"]


def default_table() -> BigramTable:
    """Return a bigram table with a handful of realistic pairs."""
    return BigramTable.from_pairs([(pair[0], pair[1]) for pair in DEFAULT_BIGRAMS])


def encode_int(value: int, byteorder: str = sys.byteorder) -> bytes:
    """Encode the 4-byte integer following a SWITCH byte."""
    return value.to_bytes(4, byteorder, signed=True)


def encode_offset(delta: int, byteorder: str = sys.byteorder) -> bytes:
    """Encode a change of the shared prefix length."""
    if -OFFSET <= delta <= OFFSET:
        return bytes([delta + OFFSET])
    return bytes([SWITCH]) + encode_int(delta + OFFSET, byteorder)


def encode_suffix(suffix: bytes, table: BigramTable | None) -> bytes:
    """Encode the non-shared part of a record."""
    codes: dict[bytes, int] = {}
    if table is not None:
        for index in range(len(table.first)):
            pair = table.pair(index)
            if 0 not in pair and pair not in codes:
                codes[pair] = index

    out = bytearray()
    position = 0
    while position < len(suffix):
        pair = suffix[position : position + 2]
        if len(pair) == 2 and pair in codes:
            out.append(PARITY | codes[pair])
            position += 2
            continue
        byte = suffix[position]
        if ASCII_MIN <= byte < PARITY:
            out.append(byte)
        else:
            out += bytes([UMLAUT, byte])
        position += 1
    return bytes(out)


def encode_database(
    records: list[str] | list[bytes],
    table: BigramTable | None = None,
    *,
    use_bigrams: bool = True,
    byteorder: str = sys.byteorder,
) -> bytes:
    """Build a complete database from already sorted records."""
    table = table if table is not None else default_table()
    out = bytearray(table.to_header())
    previous = b""
    count = 0
    for record in records:
        raw = record.encode("utf-8") if isinstance(record, str) else record
        shared = 0
        limit = min(len(previous), len(raw))
        while shared < limit and previous[shared] == raw[shared]:
            shared += 1
        out += encode_offset(shared - count, byteorder)
        out += encode_suffix(raw[shared:], table if use_bigrams else None)
        previous = raw
        count = shared
    return bytes(out)


def empty_header() -> bytes:
    """Return a header of an all-zero bigram table."""
    return BigramTable.from_pairs([]).to_header()
