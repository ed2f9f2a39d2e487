#  Copyright (c) 2025 Tom Villani, Ph.D.
"""Decoder for the bigram-compressed provides database.

The provides database uses the classic BSD ``locate`` encoding. The file
starts with a table of ``NBG`` two-character bigrams, followed by records
packed back to back with no delimiter. Each record stores only how much of
the previous record it shares (front compression) plus its differing suffix,
in which the most common character pairs are replaced by a single byte
(bigram substitution).

Control bytes inside a record::

    0 .. SWITCH-1     offset code, ends the record and opens the next one
    SWITCH            a 4-byte integer offset follows, ends the record
    UMLAUT            the next raw byte is an 8-bit literal
    ASCII_MIN..127    printable literal
    PARITY..255       bigram table index (parity bit set)

Decoding is a single streaming pass. The state carried between records lives
in a :class:`DecodeCursor` owned by the caller, and every violation of the
format raises :class:`~pkgprovides.exceptions.CorruptDatabaseError`, which ends
the pass: records are delta-encoded, so nothing after a bad offset can be
trusted.

Examples
--------
    >>> with open("/var/db/pkg/plugins/provides.db", "rb") as fh:
    ...     for record in iter_records(fh):
    ...         print(record)
    bash*/usr/local/bin/bash
    ...

"""

from __future__ import annotations

import logging
import sys
from dataclasses import dataclass, field
from typing import IO, Any, Callable, Iterator, Optional

from pkgprovides.constants import (
    ASCII_MAX,
    ASCII_MIN,
    DEFAULT_RECORD_ENCODING,
    HEADER_SIZE,
    INT_SIZE,
    MAX_PATH,
    NBG,
    OFFSET,
    PARITY,
    READ_CHUNK_SIZE,
    SWITCH,
    UMLAUT,
)
from pkgprovides.exceptions import CorruptDatabaseError
from pkgprovides.progress import ProgressCallback, emit_progress

logger = logging.getLogger(__name__)

EOF = -1

# Receives each decoded record and the caller's context; return value ignored
RecordSink = Callable[[str, Any], object]

_SWAPPED_BYTEORDER = "big" if sys.byteorder == "little" else "little"


def is_legal_bigram_byte(value: int) -> bool:
    """Return True if ``value`` may appear in the bigram table."""
    return value == 0 or ASCII_MIN <= value <= ASCII_MAX


@dataclass(frozen=True)
class BigramTable:
    """The ``NBG`` most common character pairs, indexed by ``byte & ~PARITY``."""

    first: bytes
    second: bytes

    def __post_init__(self) -> None:
        if len(self.first) != len(self.second):
            raise ValueError("Bigram halves must have the same length")

    @classmethod
    def from_pairs(cls, pairs: list[tuple[str, str]] | list[bytes]) -> BigramTable:
        """Build a table from ``("a", "b")`` tuples or two-byte strings.

        Missing entries up to ``NBG`` are filled with ``(0, 0)``.
        """
        first = bytearray(NBG)
        second = bytearray(NBG)
        for index, pair in enumerate(pairs):
            if isinstance(pair, bytes):
                first[index], second[index] = pair[0], pair[1]
            else:
                first[index], second[index] = ord(pair[0]), ord(pair[1])
        return cls(bytes(first), bytes(second))

    def pair(self, code: int) -> bytes:
        """Return the two bytes stored at bigram index ``code``."""
        return bytes((self.first[code], self.second[code]))

    def to_header(self) -> bytes:
        """Return the on-disk header form (pairs interleaved)."""
        return bytes(b for pair in zip(self.first, self.second) for b in pair)


@dataclass
class DecodeCursor:
    """Running state of one decode pass.

    Attributes
    ----------
    path : bytearray
        The previous record; its first ``count`` bytes prefix the next one
    count : int
        Length of the prefix shared with the previous record. Accumulates
        across records, never reset between them.
    control : int
        Most recently read control byte, ``-1`` once the stream is exhausted
    records : int
        Number of records emitted so far
    table : BigramTable or None
        The table loaded from the header of the stream

    """

    path: bytearray = field(default_factory=bytearray)
    count: int = 0
    control: int = EOF
    records: int = 0
    table: Optional[BigramTable] = None


class _ByteReader:
    """Buffered byte-at-a-time reader over a binary stream."""

    def __init__(self, stream: IO[bytes], on_refill: Callable[[int], None] | None = None):
        self._stream = stream
        self._buffer = b""
        self._index = 0
        self._consumed = 0
        self._on_refill = on_refill

    @property
    def position(self) -> int:
        """Number of bytes handed out so far."""
        return self._consumed + self._index

    def _refill(self) -> bool:
        self._consumed += len(self._buffer)
        self._buffer = self._stream.read(READ_CHUNK_SIZE)
        self._index = 0
        if self._on_refill is not None:
            self._on_refill(self._consumed)
        return bool(self._buffer)

    def getc(self) -> int:
        """Return the next byte, or ``EOF`` when the stream is exhausted."""
        if self._index >= len(self._buffer) and not self._refill():
            return EOF
        value = self._buffer[self._index]
        self._index += 1
        return value

    def read(self, size: int) -> bytes:
        """Return up to ``size`` bytes; fewer only at end of stream."""
        chunks = bytearray()
        while len(chunks) < size:
            if self._index >= len(self._buffer) and not self._refill():
                break
            take = self._buffer[self._index : self._index + size - len(chunks)]
            self._index += len(take)
            chunks += take
        return bytes(chunks)


def _read_table(reader: _ByteReader) -> BigramTable:
    first = bytearray(NBG)
    second = bytearray(NBG)
    for index in range(NBG):
        for half in (first, second):
            offset = reader.position
            value = reader.getc()
            if value == EOF:
                raise CorruptDatabaseError(
                    f"Database ends inside the {HEADER_SIZE}-byte bigram table", stream_offset=offset
                )
            if not is_legal_bigram_byte(value):
                raise CorruptDatabaseError(f"Illegal bigram byte 0x{value:02x}", stream_offset=offset)
            half[index] = value
    return BigramTable(bytes(first), bytes(second))


def load_bigram_table(stream: IO[bytes]) -> BigramTable:
    """Read and validate the bigram table at the start of ``stream``.

    Parameters
    ----------
    stream : IO[bytes]
        Binary stream positioned at offset 0 of a decompressed database

    Returns
    -------
    BigramTable
        The validated table

    Raises
    ------
    CorruptDatabaseError
        If a byte is neither 0 nor printable ASCII, or the header is truncated

    """
    return _read_table(_ByteReader(stream))


def decode_int(raw: bytes) -> int:
    """Decode a 4-byte offset written in either native or swapped byte order.

    The native interpretation wins if it lies within ``[-MAX_PATH, MAX_PATH]``,
    otherwise the byte-swapped one is tried.

    Raises
    ------
    CorruptDatabaseError
        If neither interpretation is in range

    """
    if len(raw) != INT_SIZE:
        raise CorruptDatabaseError(f"Expected a {INT_SIZE}-byte integer, got {len(raw)} bytes")
    native = int.from_bytes(raw, sys.byteorder, signed=True)
    if -MAX_PATH <= native <= MAX_PATH:
        return native
    swapped = int.from_bytes(raw, _SWAPPED_BYTEORDER, signed=True)
    if -MAX_PATH <= swapped <= MAX_PATH:
        return swapped
    closest = native if abs(native) < abs(swapped) else swapped
    raise CorruptDatabaseError(f"Integer out of +-MAX_PATH ({MAX_PATH}): {closest}")


def _read_wide_offset(reader: _ByteReader) -> int:
    offset = reader.position
    raw = reader.read(INT_SIZE)
    try:
        return decode_int(raw)
    except CorruptDatabaseError as exc:
        exc.stream_offset = offset
        raise


def _read_suffix(reader: _ByteReader, path: bytearray, table: BigramTable) -> int:
    """Append the rest of a record to ``path``; return the byte that ended it."""
    first, second = table.first, table.second
    while True:
        c = reader.getc()
        if c < PARITY:
            if c <= UMLAUT:
                if c != UMLAUT:
                    # Offset code of the next record, SWITCH, or EOF
                    return c
                c = reader.getc()
                if c == EOF:
                    raise CorruptDatabaseError("Database ends inside an 8-bit escape", stream_offset=reader.position)
            path.append(c)
        else:
            c &= ~PARITY
            path.append(first[c])
            path.append(second[c])
        if len(path) > MAX_PATH:
            raise CorruptDatabaseError(f"Record longer than {MAX_PATH} bytes", stream_offset=reader.position)


def _record_text(path: bytearray, encoding: str) -> str:
    raw = bytes(path)
    # A zero bigram byte terminates the record, as a C string would
    nul = raw.find(0)
    if nul >= 0:
        raw = raw[:nul]
    return raw.decode(encoding, errors="surrogateescape")


def iter_records(
    stream: IO[bytes],
    *,
    cursor: DecodeCursor | None = None,
    encoding: str = DEFAULT_RECORD_ENCODING,
    progress_callback: ProgressCallback | None = None,
    total_bytes: int = 0,
) -> Iterator[str]:
    """Lazily decode every record of a provides database.

    Parameters
    ----------
    stream : IO[bytes]
        Binary stream positioned at offset 0 of a decompressed database
    cursor : DecodeCursor, optional
        Caller-owned decode state; a fresh one is used when omitted. It is
        reset when the pass starts and left describing the last record
        emitted, so one cursor can serve several passes.
    encoding : str, default "utf-8"
        Encoding of the record text. Undecodable bytes are kept as
        surrogate escapes.
    progress_callback : ProgressCallback, optional
        Receives ``"scan"`` events with the number of bytes consumed
    total_bytes : int, default 0
        Size of the stream, reported as the event total when known

    Yields
    ------
    str
        Each reconstructed ``package*path`` record, in database order

    Raises
    ------
    CorruptDatabaseError
        On an illegal bigram byte, an offset outside ``[0, MAX_PATH]`` or an
        unreadable integer offset. No record is yielded after the violation.

    """
    if cursor is None:
        cursor = DecodeCursor()
    else:
        # Records are delta-encoded from the start of the stream
        cursor.path.clear()
        cursor.count = 0
        cursor.records = 0
        cursor.control = EOF
        cursor.table = None

    def on_refill(consumed: int) -> None:
        if consumed:
            emit_progress(progress_callback, "item_done", "Scanning database", consumed, total_bytes, stage="scan")

    reader = _ByteReader(stream, on_refill=on_refill if progress_callback else None)
    emit_progress(progress_callback, "started", "Scanning database", 0, total_bytes, stage="scan")

    table = _read_table(reader)
    cursor.table = table
    logger.debug("Loaded bigram table (%d entries)", NBG)

    path = cursor.path
    c = reader.getc()
    while c != EOF:
        opener = reader.position - 1
        if c == SWITCH:
            cursor.count += _read_wide_offset(reader) - OFFSET
        else:
            cursor.count += c - OFFSET

        if cursor.count < 0 or cursor.count > MAX_PATH:
            raise CorruptDatabaseError(
                f"Shared prefix length {cursor.count} outside [0, {MAX_PATH}]", stream_offset=opener
            )
        if cursor.count > len(path):
            raise CorruptDatabaseError(
                f"Shared prefix length {cursor.count} exceeds previous record length {len(path)}",
                stream_offset=opener,
            )

        # Overlay the previous record from the shared prefix onward
        del path[cursor.count :]
        c = _read_suffix(reader, path, table)
        cursor.control = c
        cursor.records += 1
        yield _record_text(path, encoding)

    logger.debug("Decoded %d records from %d bytes", cursor.records, reader.position)
    emit_progress(
        progress_callback, "finished", "Database scanned", reader.position, total_bytes or reader.position, stage="scan"
    )


def expand(
    stream: IO[bytes],
    sink: RecordSink,
    context: Any = None,
    *,
    cursor: DecodeCursor | None = None,
    encoding: str = DEFAULT_RECORD_ENCODING,
    progress_callback: ProgressCallback | None = None,
    total_bytes: int = 0,
) -> int:
    """Decode ``stream`` and push each record to ``sink(record, context)``.

    Returns
    -------
    int
        Number of records delivered to the sink

    Raises
    ------
    CorruptDatabaseError
        See :func:`iter_records`

    """
    delivered = 0
    for record in iter_records(
        stream, cursor=cursor, encoding=encoding, progress_callback=progress_callback, total_bytes=total_bytes
    ):
        sink(record, context)
        delivered += 1
    return delivered
