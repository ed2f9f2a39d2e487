"""pkg-provides - find which package installs a file.

pkg-provides answers "which package installs file X?" by searching a
precomputed database mapping package names to the files they install. The
database is stored in the bigram-compressed format of the BSD ``locate``
database, with one ``<package>*<path>`` record per installed file.

The search is a single streaming pass: :mod:`pkgprovides.bigram` decodes the
database one record at a time and pushes each record into a
:class:`~pkgprovides.search.SearchIndexBuilder`, which groups the matching
files by package.

Examples
--------
Search the local database::

    >>> from pkgprovides import search_database
    >>> index = search_database("bin/bash$")
    >>> for match in index:
    ...     print(match.name, match.files)

Search any decompressed database stream::

    >>> from pkgprovides import search_stream
    >>> with open("provides.db", "rb") as fh:
    ...     index = search_stream(fh, "libssl")

Refresh the database from the mirror::

    >>> from pkgprovides import fetch_database, load_config
    >>> fetch_database(load_config())

"""

from __future__ import annotations

__version__ = "0.7.0"

from pkgprovides.api import open_database, search_database, search_stream
from pkgprovides.bigram import BigramTable, DecodeCursor, expand, iter_records, load_bigram_table
from pkgprovides.config import ProvidesConfig, load_config
from pkgprovides.exceptions import (
    ConfigError,
    CorruptDatabaseError,
    DatabaseError,
    DatabaseNotFoundError,
    ExtractionError,
    FetchError,
    InvalidPatternError,
    MalformedRecordError,
    ProvidesError,
    UpdateError,
    ValidationError,
)
from pkgprovides.progress import ProgressCallback, ProgressEvent
from pkgprovides.search import CompiledPattern, PackageMatch, SearchIndex, SearchIndexBuilder, compile_pattern
from pkgprovides.update import UpdateResult, fetch_database, is_database_stale

__all__ = [
    "__version__",
    # Search
    "search_database",
    "search_stream",
    "open_database",
    "compile_pattern",
    "CompiledPattern",
    "SearchIndex",
    "SearchIndexBuilder",
    "PackageMatch",
    # Decoding
    "BigramTable",
    "DecodeCursor",
    "expand",
    "iter_records",
    "load_bigram_table",
    # Configuration and update
    "ProvidesConfig",
    "load_config",
    "fetch_database",
    "is_database_stale",
    "UpdateResult",
    # Progress
    "ProgressCallback",
    "ProgressEvent",
    # Exceptions
    "ProvidesError",
    "ValidationError",
    "InvalidPatternError",
    "ConfigError",
    "DatabaseError",
    "DatabaseNotFoundError",
    "CorruptDatabaseError",
    "MalformedRecordError",
    "UpdateError",
    "FetchError",
    "ExtractionError",
]
