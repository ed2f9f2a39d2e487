#  Copyright (c) 2025 Tom Villani, Ph.D.
"""Rendering of search results.

Each matching package is looked up in the configured package repositories
and printed once per repository that carries it::

    bash-5.2.26 : GNU Project's Bourne Again SHell
    Repo    : FreeBSD
    Filename: /usr/local/bin/bash
              /usr/local/bin/bashbug

Blocks are grouped by repository, in the order the repositories are first
reported, and by scan order of the packages within each repository.
Repository metadata comes from a :class:`PackageMetadataResolver`; the
default one asks ``pkg rquery``.
"""

from __future__ import annotations

import logging
import shutil
import subprocess
import sys
from dataclasses import asdict, dataclass
from typing import IO, Any, Optional, Protocol, Sequence

from pkgprovides.search import SearchIndex

logger = logging.getLogger(__name__)

RQUERY_FORMAT = "%n\t%v\t%c\t%R"
FILENAME_LABEL = "Filename: "
REPO_LABEL = "Repo    : "
CONTINUATION_INDENT = " " * len(FILENAME_LABEL)


@dataclass(frozen=True)
class PackageInfo:
    """Display metadata of one package in one repository."""

    name: str
    version: Optional[str] = None
    comment: Optional[str] = None
    repository: Optional[str] = None

    @property
    def title(self) -> str:
        """Return the ``name-version : comment`` heading."""
        title = f"{self.name}-{self.version}" if self.version else self.name
        if self.comment:
            title += f" : {self.comment}"
        return title


class PackageMetadataResolver(Protocol):
    """Looks up the repositories providing a package."""

    def resolve(self, name: str) -> Sequence[PackageInfo]:
        """Return one entry per repository carrying ``name``; empty if unknown."""
        ...


class StaticResolver:
    """Resolver that knows nothing beyond the package name."""

    def resolve(self, name: str) -> Sequence[PackageInfo]:
        return [PackageInfo(name=name)]


class PkgQueryResolver:
    """Resolve packages against the enabled remote repositories with ``pkg rquery``.

    Parameters
    ----------
    pkg_binary : str, default "pkg"
        The pkg(8) executable
    repository : str, optional
        Restrict lookups to one repository (``pkg rquery -r``)

    """

    def __init__(self, pkg_binary: str = "pkg", repository: str | None = None):
        self.pkg_binary = pkg_binary
        self.repository = repository

    def _command(self, name: str) -> list[str]:
        command = [self.pkg_binary, "rquery", "-U"]
        if self.repository:
            command += ["-r", self.repository]
        return command + [RQUERY_FORMAT, name]

    def resolve(self, name: str) -> Sequence[PackageInfo]:
        try:
            completed = subprocess.run(self._command(name), capture_output=True, text=True, check=False)
        except OSError as exc:
            logger.warning("Cannot run %s: %s", self.pkg_binary, exc)
            return []
        if completed.returncode != 0:
            logger.debug("pkg rquery found no %s: %s", name, completed.stderr.strip())
            return []

        infos: list[PackageInfo] = []
        for line in completed.stdout.splitlines():
            parts = line.split("\t", 3)
            if len(parts) != 4:
                logger.debug("Ignoring unexpected rquery output: %r", line)
                continue
            pkg_name, version, comment, repository = parts
            infos.append(PackageInfo(name=pkg_name, version=version, comment=comment, repository=repository))
        return infos


def default_resolver() -> PackageMetadataResolver:
    """Return a ``pkg rquery`` resolver when pkg(8) is installed, else a static one."""
    if shutil.which("pkg"):
        return PkgQueryResolver()
    logger.info("pkg(8) not found, showing package names without repository metadata")
    return StaticResolver()


def format_block(info: PackageInfo, files: Sequence[str]) -> list[str]:
    """Return the plain-text lines describing one package in one repository."""
    lines = [info.title]
    if info.repository:
        lines.append(f"{REPO_LABEL}{info.repository}")
    for position, path in enumerate(files):
        lines.append(f"{FILENAME_LABEL if position == 0 else CONTINUATION_INDENT}{path}")
    return lines


def _resolved_blocks(index: SearchIndex, resolver: PackageMetadataResolver) -> list[tuple[PackageInfo, tuple[str, ...]]]:
    # Repository-major: every package of a repository before the next repository
    per_repository: dict[Optional[str], list[tuple[PackageInfo, tuple[str, ...]]]] = {}
    for match in index:
        infos = resolver.resolve(match.name)
        if not infos:
            logger.debug("Package %s is not available from any repository", match.name)
        for info in infos:
            per_repository.setdefault(info.repository, []).append((info, match.files))
    return [block for blocks in per_repository.values() for block in blocks]


def render_results(
    index: SearchIndex,
    resolver: PackageMetadataResolver,
    *,
    use_rich: bool = False,
    console: Any = None,
    stream: IO[str] | None = None,
) -> int:
    """Print the search results.

    Parameters
    ----------
    index : SearchIndex
        Results of a search
    resolver : PackageMetadataResolver
        Source of version, comment and repository
    use_rich : bool, default False
        Style the output with Rich
    console : rich.console.Console, optional
        Console to print to when ``use_rich`` is set
    stream : IO[str], optional
        Destination for plain output, defaults to stdout

    Returns
    -------
    int
        Number of package blocks printed

    """
    blocks = _resolved_blocks(index, resolver)

    if use_rich:
        from rich.console import Console
        from rich.text import Text

        console = console or Console()
        for number, (info, files) in enumerate(blocks):
            if number:
                console.print()
            console.print(Text(info.title, style="bold cyan"))
            if info.repository:
                console.print(Text.assemble((REPO_LABEL, "dim"), info.repository))
            for position, path in enumerate(files):
                label = FILENAME_LABEL if position == 0 else CONTINUATION_INDENT
                console.print(Text.assemble((label, "dim"), (path, "green")), soft_wrap=True)
        return len(blocks)

    out = stream or sys.stdout
    for number, (info, files) in enumerate(blocks):
        if number:
            out.write("\n")
        out.write("\n".join(format_block(info, files)) + "\n")
    return len(blocks)


def results_to_json(index: SearchIndex, resolver: PackageMetadataResolver) -> list[dict[str, Any]]:
    """Return the resolved results as JSON-serializable dictionaries."""
    return [{**asdict(info), "files": list(files)} for info, files in _resolved_blocks(index, resolver)]
