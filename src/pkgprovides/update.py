#  Copyright (c) 2025 Tom Villani, Ph.D.
"""Refresh the local provides database from the remote mirror.

The mirror serves the database inside an outer compression container
(``ports.db.xz`` by default). An update downloads it next to the target,
unpacks it, checks that the result starts with a valid bigram table and only
then moves it over the previous database, so a failed update never leaves a
truncated database behind.
"""

from __future__ import annotations

import bz2
import gzip
import logging
import lzma
import os
import shutil
import tempfile
import zlib
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from email.utils import format_datetime, parsedate_to_datetime
from pathlib import Path
from typing import IO, Iterator, Optional

import httpx

from pkgprovides.bigram import load_bigram_table
from pkgprovides.config import ProvidesConfig
from pkgprovides.constants import COMPRESSION_MAGIC, DEFAULT_USER_AGENT, CompressionType
from pkgprovides.exceptions import CorruptDatabaseError, ExtractionError, FetchError
from pkgprovides.progress import ProgressCallback, emit_progress

logger = logging.getLogger(__name__)

DOWNLOAD_CHUNK_SIZE = 64 * 1024


@dataclass(frozen=True)
class UpdateResult:
    """Outcome of an update.

    Attributes
    ----------
    updated : bool
        False when the local database was already current
    database_path : str
        Location of the local database
    bytes_downloaded : int
        Size of the compressed download, 0 if nothing was fetched

    """

    updated: bool
    database_path: str
    bytes_downloaded: int = 0


def database_url(config: ProvidesConfig) -> str:
    """Return the URL of the compressed database on the mirror."""
    return f"{config.remote_url.rstrip('/')}/{config.remote_filename.lstrip('/')}"


def create_http_client(config: ProvidesConfig) -> httpx.Client:
    """Create the HTTP client used to talk to the mirror."""
    return httpx.Client(
        timeout=config.timeout,
        follow_redirects=True,
        headers={"User-Agent": os.getenv("PROVIDES_USER_AGENT") or DEFAULT_USER_AGENT},
    )


@contextmanager
def _client_scope(config: ProvidesConfig, client: httpx.Client | None) -> Iterator[httpx.Client]:
    if client is not None:
        yield client
        return
    owned = create_http_client(config)
    try:
        yield owned
    finally:
        owned.close()


def _local_mtime(path: Path) -> Optional[datetime]:
    try:
        return datetime.fromtimestamp(path.stat().st_mtime, tz=timezone.utc)
    except FileNotFoundError:
        return None


def _parse_last_modified(value: str | None) -> Optional[datetime]:
    if not value:
        return None
    try:
        parsed = parsedate_to_datetime(value)
    except (TypeError, ValueError):
        logger.debug("Ignoring unparsable Last-Modified header: %r", value)
        return None
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)


def is_database_stale(config: ProvidesConfig, client: httpx.Client | None = None) -> bool:
    """Return True if the mirror has a newer database than the local one.

    A missing local database is always stale. When the mirror does not report
    a usable ``Last-Modified`` date the local copy is considered stale too.

    Raises
    ------
    FetchError
        If the mirror cannot be reached or answers with an error

    """
    local = _local_mtime(Path(config.database_path))
    if local is None:
        return True

    url = database_url(config)
    with _client_scope(config, client) as http:
        try:
            response = http.head(url)
        except httpx.HTTPError as e:
            raise FetchError(f"Cannot reach {url}: {e}", url=url, original_error=e) from e
    if response.status_code >= 400:
        raise FetchError(f"{url} returned HTTP {response.status_code}", url=url, status_code=response.status_code)

    remote = _parse_last_modified(response.headers.get("Last-Modified"))
    if remote is None:
        return True
    return remote > local


def detect_compression(header: bytes) -> CompressionType:
    """Identify the outer container from the first bytes of a download."""
    for magic, kind in COMPRESSION_MAGIC.items():
        if header.startswith(magic):
            return kind
    return "raw"


def _open_container(path: Path) -> IO[bytes]:
    with open(path, "rb") as fh:
        kind = detect_compression(fh.read(8))
    logger.debug("Unpacking %s as %s", path, kind)
    if kind == "xz":
        return lzma.open(path, "rb")
    if kind == "gzip":
        return gzip.open(path, "rb")
    if kind == "bzip2":
        return bz2.open(path, "rb")
    return open(path, "rb")


def extract_database(archive_path: str | Path, target_path: str | Path) -> Path:
    """Unpack ``archive_path`` and atomically install it at ``target_path``.

    Raises
    ------
    ExtractionError
        If decompression fails or the result is not a provides database;
        the existing database is left untouched

    """
    archive_path = Path(archive_path)
    target_path = Path(target_path)
    target_path.parent.mkdir(parents=True, exist_ok=True)

    fd, tmp_name = tempfile.mkstemp(prefix=".provides-", suffix=".db", dir=target_path.parent)
    tmp_path = Path(tmp_name)
    try:
        try:
            with os.fdopen(fd, "wb") as out, _open_container(archive_path) as source:
                shutil.copyfileobj(source, out)
            with open(tmp_path, "rb") as check:
                load_bigram_table(check)
            os.chmod(tmp_path, 0o644)
            os.replace(tmp_path, target_path)
        except CorruptDatabaseError as e:
            raise ExtractionError(f"Downloaded file is not a provides database: {e}", original_error=e) from e
        except (OSError, EOFError, lzma.LZMAError, zlib.error) as e:
            raise ExtractionError(f"Cannot extract {archive_path}: {e}", original_error=e) from e
    except BaseException:
        tmp_path.unlink(missing_ok=True)
        raise
    return target_path


def _download(
    http: httpx.Client,
    url: str,
    destination: IO[bytes],
    headers: dict[str, str],
    progress_callback: ProgressCallback | None,
) -> tuple[int, Optional[datetime]] | None:
    """Stream ``url`` into ``destination``; None when the server answers 304."""
    try:
        with http.stream("GET", url, headers=headers) as response:
            if response.status_code == 304:
                return None
            if response.status_code >= 400:
                raise FetchError(
                    f"{url} returned HTTP {response.status_code}", url=url, status_code=response.status_code
                )
            total = int(response.headers.get("Content-Length") or 0)
            emit_progress(progress_callback, "started", "Fetching provides database", 0, total, stage="download")
            received = 0
            for chunk in response.iter_bytes(DOWNLOAD_CHUNK_SIZE):
                destination.write(chunk)
                received += len(chunk)
                emit_progress(
                    progress_callback, "item_done", "Fetching provides database", received, total, stage="download"
                )
            emit_progress(
                progress_callback,
                "finished",
                "Provides database fetched",
                received,
                total or received,
                stage="download",
            )
            return received, _parse_last_modified(response.headers.get("Last-Modified"))
    except httpx.HTTPError as e:
        emit_progress(progress_callback, "error", f"Fetching {url} failed", stage="download", error=str(e))
        raise FetchError(f"Cannot fetch {url}: {e}", url=url, original_error=e) from e


def fetch_database(
    config: ProvidesConfig,
    *,
    force: bool = False,
    client: httpx.Client | None = None,
    progress_callback: ProgressCallback | None = None,
) -> UpdateResult:
    """Download and install the latest database from the mirror.

    Parameters
    ----------
    config : ProvidesConfig
        Mirror location and local database path
    force : bool, default False
        Download even if the local database looks current
    client : httpx.Client, optional
        HTTP client to use; one is created and closed when omitted
    progress_callback : ProgressCallback, optional
        Receives ``"download"`` and ``"extract"`` events

    Returns
    -------
    UpdateResult
        Whether the database was replaced and how much was downloaded

    Raises
    ------
    FetchError
        If the download fails
    ExtractionError
        If the download cannot be unpacked or is not a valid database

    """
    target = Path(config.database_path)
    url = database_url(config)
    headers: dict[str, str] = {}
    local = _local_mtime(target)
    if local is not None and not force:
        headers["If-Modified-Since"] = format_datetime(local, usegmt=True)

    target.parent.mkdir(parents=True, exist_ok=True)
    fd, archive_name = tempfile.mkstemp(prefix=".provides-", suffix=".download", dir=target.parent)
    archive = Path(archive_name)
    try:
        with os.fdopen(fd, "wb") as destination, _client_scope(config, client) as http:
            logger.info("Fetching %s", url)
            outcome = _download(http, url, destination, headers, progress_callback)
        if outcome is None:
            logger.info("Provides database is up to date")
            return UpdateResult(updated=False, database_path=str(target))

        received, last_modified = outcome
        emit_progress(progress_callback, "started", "Extracting database", stage="extract")
        extract_database(archive, target)
        if last_modified is not None:
            stamp = last_modified.timestamp()
            os.utime(target, (stamp, stamp))
        emit_progress(progress_callback, "finished", "Database extracted", stage="extract")
        logger.info("Installed provides database at %s (%d bytes downloaded)", target, received)
        return UpdateResult(updated=True, database_path=str(target), bytes_downloaded=received)
    finally:
        archive.unlink(missing_ok=True)


def update_on_pkg_update(
    config: ProvidesConfig,
    *,
    client: httpx.Client | None = None,
    progress_callback: ProgressCallback | None = None,
) -> UpdateResult | None:
    """Refresh the database as part of ``pkg update`` unless disabled.

    Returns None without touching the network when ``fetch_on_update`` is off.
    """
    if not config.fetch_on_update:
        logger.debug("Fetch on update disabled, skipping provides database refresh")
        return None
    return fetch_database(config, client=client, progress_callback=progress_callback)
