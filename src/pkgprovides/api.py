#  Copyright (c) 2025 Tom Villani, Ph.D.
"""High-level search API.

The search pipeline is a single streaming pass: the pattern is compiled
first, then the decoder pushes each record of the database straight into a
:class:`~pkgprovides.search.SearchIndexBuilder`, and the finished grouping is
returned once the stream is exhausted.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import IO

from pkgprovides.bigram import DecodeCursor, expand
from pkgprovides.config import ProvidesConfig, load_config
from pkgprovides.constants import DEFAULT_RECORD_ENCODING
from pkgprovides.exceptions import CorruptDatabaseError, DatabaseError, DatabaseNotFoundError
from pkgprovides.progress import ProgressCallback
from pkgprovides.search import CompiledPattern, SearchIndex, SearchIndexBuilder, compile_pattern

logger = logging.getLogger(__name__)


def search_stream(
    stream: IO[bytes],
    pattern: str | CompiledPattern,
    *,
    encoding: str = DEFAULT_RECORD_ENCODING,
    ignore_case: bool = False,
    progress_callback: ProgressCallback | None = None,
    total_bytes: int = 0,
) -> SearchIndex:
    """Search a decompressed provides database stream.

    Parameters
    ----------
    stream : IO[bytes]
        Binary stream positioned at the start of the database
    pattern : str or CompiledPattern
        Regular expression, compiled before the stream is read
    encoding : str, default "utf-8"
        Text encoding of the records
    ignore_case : bool, default False
        Case-insensitive matching (ignored for precompiled patterns)
    progress_callback : ProgressCallback, optional
        Receives scan progress events
    total_bytes : int, default 0
        Stream size for progress reporting

    Returns
    -------
    SearchIndex
        Matching files grouped by package, in database order

    Raises
    ------
    InvalidPatternError
        If the pattern does not compile (before any I/O)
    CorruptDatabaseError
        If the stream violates the database format

    """
    compiled = pattern if isinstance(pattern, CompiledPattern) else compile_pattern(pattern, ignore_case=ignore_case)
    builder = SearchIndexBuilder(compiled)
    expand(
        stream,
        builder,
        cursor=DecodeCursor(),
        encoding=encoding,
        progress_callback=progress_callback,
        total_bytes=total_bytes,
    )
    return builder.build()


def open_database(database_path: str | Path) -> IO[bytes]:
    """Open the local database for reading.

    Raises
    ------
    DatabaseNotFoundError
        If the database does not exist
    DatabaseError
        If it exists but cannot be read

    """
    path = str(database_path)
    try:
        return open(path, "rb")
    except FileNotFoundError as e:
        raise DatabaseNotFoundError(path, original_error=e) from e
    except OSError as e:
        raise DatabaseError(f"Cannot open provides database {path}: {e}", database_path=path, original_error=e) from e


def search_database(
    pattern: str,
    *,
    database_path: str | Path | None = None,
    config: ProvidesConfig | None = None,
    ignore_case: bool = False,
    progress_callback: ProgressCallback | None = None,
) -> SearchIndex:
    """Find the packages installing files that match ``pattern``.

    Parameters
    ----------
    pattern : str
        Regular expression; matched against basenames unless it contains ``/``
    database_path : str or Path, optional
        Database to search, defaults to the configured path
    config : ProvidesConfig, optional
        Configuration, loaded from file and environment when omitted
    ignore_case : bool, default False
        Case-insensitive matching
    progress_callback : ProgressCallback, optional
        Receives scan progress events

    Returns
    -------
    SearchIndex
        Matching files grouped by package

    Raises
    ------
    InvalidPatternError
        If the pattern does not compile
    DatabaseNotFoundError
        If the database has not been fetched
    CorruptDatabaseError
        If the database is corrupt; a forced update is the remedy

    Examples
    --------
    >>> index = search_database("bin/bash$")
    >>> for match in index:
    ...     print(match.name, match.files)
    bash ('/usr/local/bin/bash',)

    """
    compiled = compile_pattern(pattern, ignore_case=ignore_case)
    if config is None:
        config = load_config()
    path = str(database_path) if database_path is not None else config.database_path

    logger.debug("Searching %s for %r", path, pattern)
    with open_database(path) as stream:
        try:
            total_bytes = os.fstat(stream.fileno()).st_size
        except OSError:
            total_bytes = 0
        try:
            return search_stream(
                stream,
                compiled,
                encoding=config.encoding,
                progress_callback=progress_callback,
                total_bytes=total_bytes,
            )
        except CorruptDatabaseError as e:
            e.database_path = path
            raise
