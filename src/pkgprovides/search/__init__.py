"""Pattern matching and grouping of decoded database records."""

from __future__ import annotations

from pkgprovides.search.matcher import (
    CompiledPattern,
    SearchIndexBuilder,
    basename,
    compile_pattern,
    pattern_has_path_separator,
    split_record,
)
from pkgprovides.search.types import PackageMatch, SearchIndex

__all__ = [
    "CompiledPattern",
    "PackageMatch",
    "SearchIndex",
    "SearchIndexBuilder",
    "basename",
    "compile_pattern",
    "pattern_has_path_separator",
    "split_record",
]
