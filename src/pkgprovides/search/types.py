"""Shared data structures for the search subsystem."""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Iterator, Mapping


@dataclass(frozen=True)
class PackageMatch:
    """A package together with the files of it that matched the pattern."""

    name: str
    files: tuple[str, ...]


@dataclass(frozen=True)
class SearchIndex:
    """Finished ``package -> files`` grouping produced by one scan.

    Packages appear in the order their first matching record was scanned and
    each package's files in scan order.
    """

    pattern: str
    groups: Mapping[str, tuple[str, ...]] = field(default_factory=dict)
    records_scanned: int = 0
    malformed_records: int = 0

    def __post_init__(self) -> None:
        object.__setattr__(self, "groups", MappingProxyType(dict(self.groups)))

    def __iter__(self) -> Iterator[PackageMatch]:
        for name, files in self.groups.items():
            yield PackageMatch(name=name, files=files)

    def __len__(self) -> int:
        return len(self.groups)

    def __bool__(self) -> bool:
        return bool(self.groups)

    def __contains__(self, package: object) -> bool:
        return package in self.groups

    @property
    def packages(self) -> list[str]:
        """Return the matching package names in scan order."""
        return list(self.groups)

    def files_for(self, package: str) -> tuple[str, ...]:
        """Return the matched files of ``package`` (empty if it did not match)."""
        return self.groups.get(package, ())

    @property
    def match_count(self) -> int:
        """Return the total number of matched files."""
        return sum(len(files) for files in self.groups.values())

    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-serializable representation."""
        return {
            "pattern": self.pattern,
            "records_scanned": self.records_scanned,
            "malformed_records": self.malformed_records,
            "packages": {name: list(files) for name, files in self.groups.items()},
        }
