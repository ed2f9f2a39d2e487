#  Copyright (c) 2025 Tom Villani, Ph.D.
"""Pattern matching and package grouping for decoded records.

Every decoded record has the form ``<package>*<path>``. A pattern containing
a ``/`` is searched for in the full path; any other pattern is searched for
in the basename only, so ``tool$`` finds ``/usr/local/bin/tool`` without also
matching every file below a ``tool`` directory.

:class:`SearchIndexBuilder` is a record sink for
:func:`pkgprovides.bigram.expand`: it receives the records one by one during
the scan and groups the matching paths by package.
"""

from __future__ import annotations

import logging
import posixpath
import re
from dataclasses import dataclass
from typing import Any

from pkgprovides.constants import PATH_SEPARATOR, RECORD_SEPARATOR
from pkgprovides.exceptions import InvalidPatternError, MalformedRecordError
from pkgprovides.search.types import SearchIndex

logger = logging.getLogger(__name__)


def pattern_has_path_separator(pattern: str) -> bool:
    """Return True if ``pattern`` should be matched against full paths."""
    return PATH_SEPARATOR in pattern


@dataclass(frozen=True)
class CompiledPattern:
    """A search pattern compiled once before scanning.

    Attributes
    ----------
    source : str
        The pattern as given by the user
    regex : re.Pattern
        The compiled regular expression
    full_path : bool
        Whether the pattern is applied to the full path rather than the basename

    """

    source: str
    regex: re.Pattern[str]
    full_path: bool

    def matches(self, path: str) -> bool:
        """Return True if the pattern occurs anywhere in the relevant part of ``path``."""
        subject = path if self.full_path else basename(path)
        return self.regex.search(subject) is not None


def compile_pattern(pattern: str, *, ignore_case: bool = False) -> CompiledPattern:
    """Compile a user-supplied regular expression.

    Parameters
    ----------
    pattern : str
        Regular expression in Python ``re`` syntax
    ignore_case : bool, default False
        Compile with ``re.IGNORECASE``

    Returns
    -------
    CompiledPattern
        The compiled pattern

    Raises
    ------
    InvalidPatternError
        If the pattern is empty or does not compile

    """
    if not pattern:
        raise InvalidPatternError(pattern)
    flags = re.IGNORECASE if ignore_case else 0
    try:
        regex = re.compile(pattern, flags)
    except re.error as exc:
        raise InvalidPatternError(pattern, position=exc.pos, original_error=exc) from exc
    return CompiledPattern(source=pattern, regex=regex, full_path=pattern_has_path_separator(pattern))


def basename(path: str) -> str:
    """Return the final component of ``path`` with basename(3) semantics.

    Trailing slashes are ignored, ``"/"`` stays ``"/"`` and an empty path
    becomes ``"."``.
    """
    if not path:
        return "."
    stripped = path.rstrip(PATH_SEPARATOR)
    if not stripped:
        return PATH_SEPARATOR
    return posixpath.basename(stripped)


def split_record(record: str) -> tuple[str, str]:
    """Split a record at its first separator into ``(package, path)``.

    Raises
    ------
    MalformedRecordError
        If the record contains no separator

    """
    package, sep, path = record.partition(RECORD_SEPARATOR)
    if not sep:
        raise MalformedRecordError(record)
    return package, path


class SearchIndexBuilder:
    """Accumulate matching records into a ``package -> files`` grouping.

    Parameters
    ----------
    pattern : CompiledPattern
        Pattern compiled with :func:`compile_pattern`

    Examples
    --------
    >>> builder = SearchIndexBuilder(compile_pattern("bash$"))
    >>> builder.add_record("bash*/usr/local/bin/bash")
    True
    >>> builder.build().packages
    ['bash']

    """

    def __init__(self, pattern: CompiledPattern):
        """Initialize an empty grouping for ``pattern``."""
        self.pattern = pattern
        self._groups: dict[str, list[str]] = {}
        self.records_scanned = 0
        self.malformed_records = 0

    def __call__(self, record: str, context: Any = None) -> None:
        """Record sink interface used by :func:`pkgprovides.bigram.expand`."""
        self.add_record(record)

    def add_record(self, record: str) -> bool:
        """Test one record and file it under its package if it matches.

        Malformed records are counted and skipped.

        Returns
        -------
        bool
            True if the record matched

        """
        self.records_scanned += 1
        try:
            package, path = split_record(record)
        except MalformedRecordError as exc:
            self.malformed_records += 1
            logger.debug("Skipping record: %s", exc.message)
            return False

        if not self.pattern.matches(path):
            return False

        self._groups.setdefault(package, []).append(path)
        return True

    def build(self) -> SearchIndex:
        """Return the finished grouping.

        Only meaningful once the whole database has been scanned, since a
        package's files may be spread over the stream.
        """
        if self.malformed_records:
            logger.info("Skipped %d malformed records", self.malformed_records)
        logger.info(
            "Pattern %r matched %d files in %d packages (%d records scanned)",
            self.pattern.source,
            sum(len(files) for files in self._groups.values()),
            len(self._groups),
            self.records_scanned,
        )
        return SearchIndex(
            pattern=self.pattern.source,
            groups={name: tuple(files) for name, files in self._groups.items()},
            records_scanned=self.records_scanned,
            malformed_records=self.malformed_records,
        )
