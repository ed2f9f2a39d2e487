"""Pytest configuration and shared fixtures for the pkg-provides test suite."""

from __future__ import annotations

import io
from pathlib import Path

import pytest
from utils import encode_database

from pkgprovides.config import ProvidesConfig

SAMPLE_RECORDS = [
    "bash*/usr/local/bin/bash",
    "bash*/usr/local/bin/bashbug",
    "bash*/usr/local/share/doc/bash/FAQ",
    "curl*/usr/local/bin/curl",
    "curl*/usr/local/lib/libcurl.so.4",
    "python311*/usr/local/bin/python3.11",
    "python311*/usr/local/lib/python3.11/os.py",
    "zsh*/usr/local/bin/zsh",
]


def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line("markers", "unit: Unit tests - fast, isolated component tests")
    config.addinivalue_line("markers", "integration: Integration tests - component interaction tests")
    config.addinivalue_line("markers", "cli: Tests related to command-line interface")


@pytest.fixture
def sample_records() -> list[str]:
    """Provide sorted ``package*path`` records."""
    return list(SAMPLE_RECORDS)


@pytest.fixture
def sample_database_bytes(sample_records) -> bytes:
    """Provide an encoded database of the sample records."""
    return encode_database(sample_records)


@pytest.fixture
def sample_stream(sample_database_bytes) -> io.BytesIO:
    """Provide the sample database as a binary stream."""
    return io.BytesIO(sample_database_bytes)


@pytest.fixture
def database_file(tmp_path: Path, sample_database_bytes: bytes) -> Path:
    """Write the sample database to a temporary file.

    Returns
    -------
    Path
        Path of the database file

    """
    path = tmp_path / "provides.db"
    path.write_bytes(sample_database_bytes)
    return path


@pytest.fixture
def provides_config(tmp_path: Path) -> ProvidesConfig:
    """Provide a configuration pointing at a temporary database location."""
    return ProvidesConfig(
        remote_url="https://mirror.example.org",
        database_path=str(tmp_path / "db" / "provides.db"),
        timeout=5.0,
    )


@pytest.fixture(autouse=True)
def isolated_environment(monkeypatch, tmp_path: Path):
    """Keep PROVIDES_* variables and system config files out of the tests."""
    for name in ("PROVIDES_CONFIG", "PROVIDES_URL", "PROVIDES_DB_PATH", "PROVIDES_FETCH_ON_UPDATE", "PROVIDES_TIMEOUT"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setattr("pkgprovides.config.CONFIG_SEARCH_PATHS", [str(tmp_path / "no-such-config.toml")])
