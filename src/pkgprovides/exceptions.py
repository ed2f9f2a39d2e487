#  Copyright (c) 2025 Tom Villani, Ph.D.
"""Custom exceptions for the pkg-provides library.

This module defines specialized exception classes for the error conditions
that can occur while loading configuration, searching the provides database
and refreshing it from the remote mirror.

Exception Hierarchy
-------------------
- ProvidesError (base exception)

  - ValidationError (parameter validation)
    - InvalidPatternError (search pattern does not compile)

  - ConfigError (unreadable or invalid configuration)

  - DatabaseError (local provides database)
    - DatabaseNotFoundError (database was never fetched)
    - CorruptDatabaseError (illegal bigram byte, offset out of range, ...)
    - MalformedRecordError (record without package separator, recoverable)

  - UpdateError (refreshing the database)
    - FetchError (HTTP or transport failure)
    - ExtractionError (decompression or verification failure)

"""

from __future__ import annotations

from typing import Any


class ProvidesError(Exception):
    """Base exception class for all pkg-provides errors.

    Catching this will catch all library-specific errors.

    Parameters
    ----------
    message : str
        Human-readable description of the error
    original_error : Exception, optional
        The original exception that caused this error, if applicable

    Attributes
    ----------
    message : str
        The error message
    original_error : Exception or None
        The wrapped original exception, if any

    """

    def __init__(self, message: str, original_error: Exception | None = None):
        """Initialize the error with a message and optional original exception."""
        super().__init__(message)
        self.message = message
        self.original_error = original_error


class ValidationError(ProvidesError):
    """Exception raised for invalid input parameters.

    Parameters
    ----------
    message : str
        Description of the validation error
    parameter_name : str, optional
        Name of the invalid parameter
    parameter_value : any, optional
        The invalid value that was provided
    original_error : Exception, optional
        The original exception that caused this error

    """

    def __init__(
        self,
        message: str,
        parameter_name: str | None = None,
        parameter_value: Any = None,
        original_error: Exception | None = None,
    ):
        """Initialize the validation error with parameter details."""
        super().__init__(message, original_error=original_error)
        self.parameter_name = parameter_name
        self.parameter_value = parameter_value


class InvalidPatternError(ValidationError):
    """Exception raised when a search pattern is not a valid regular expression.

    Parameters
    ----------
    pattern : str
        The pattern that failed to compile
    position : int, optional
        Index in the pattern where compilation failed
    original_error : Exception, optional
        The ``re.error`` raised by the compiler

    """

    def __init__(self, pattern: str, position: int | None = None, original_error: Exception | None = None):
        """Initialize the invalid pattern error."""
        message = f"Invalid search pattern: {pattern!r}"
        if original_error is not None:
            message += f" ({original_error})"
        super().__init__(message, parameter_name="pattern", parameter_value=pattern, original_error=original_error)
        self.pattern = pattern
        self.position = position


class ConfigError(ProvidesError):
    """Exception raised when configuration cannot be loaded or is invalid.

    Parameters
    ----------
    message : str
        Description of the configuration problem
    config_path : str, optional
        Path of the offending configuration file
    original_error : Exception, optional
        The original exception that caused this error

    """

    def __init__(self, message: str, config_path: str | None = None, original_error: Exception | None = None):
        """Initialize the configuration error."""
        super().__init__(message, original_error=original_error)
        self.config_path = config_path


class DatabaseError(ProvidesError):
    """Base exception for errors concerning the local provides database.

    Parameters
    ----------
    message : str
        Description of the database error
    database_path : str, optional
        Path of the database file, when known
    original_error : Exception, optional
        The original exception that caused this error

    """

    def __init__(self, message: str, database_path: str | None = None, original_error: Exception | None = None):
        """Initialize the database error with its path."""
        super().__init__(message, original_error=original_error)
        self.database_path = database_path


class DatabaseNotFoundError(DatabaseError):
    """Exception raised when the provides database has not been fetched yet."""

    def __init__(self, database_path: str, message: str | None = None, original_error: Exception | None = None):
        """Initialize the database not found error."""
        if message is None:
            message = f"Provides database not found at {database_path}, please update first (pkg-provides -u)"
        super().__init__(message, database_path=database_path, original_error=original_error)


class CorruptDatabaseError(DatabaseError):
    """Exception raised when the database stream violates the bigram format.

    The records are delta-encoded against each other, so once this is raised
    nothing decoded from the rest of the stream can be trusted.

    Parameters
    ----------
    message : str
        Description of the violation
    stream_offset : int, optional
        Byte offset in the stream where the violation was detected
    database_path : str, optional
        Path of the database file, when known
    original_error : Exception, optional
        The original exception that caused this error

    """

    def __init__(
        self,
        message: str,
        stream_offset: int | None = None,
        database_path: str | None = None,
        original_error: Exception | None = None,
    ):
        """Initialize the corrupt database error."""
        super().__init__(message, database_path=database_path, original_error=original_error)
        self.stream_offset = stream_offset

    def __str__(self) -> str:
        """Return the message followed by the location of the violation."""
        details = self.message
        if self.stream_offset is not None:
            details += f" (at byte {self.stream_offset})"
        if self.database_path:
            details += f" in {self.database_path}"
        return details


class MalformedRecordError(DatabaseError):
    """Exception raised for a decoded record lacking the package separator.

    Search treats this as recoverable: the record is excluded from the
    results and decoding continues.
    """

    def __init__(self, record: str, message: str | None = None):
        """Initialize the malformed record error."""
        if message is None:
            message = f"Record has no package separator: {record!r}"
        super().__init__(message)
        self.record = record


class UpdateError(ProvidesError):
    """Base exception for failures while refreshing the database."""


class FetchError(UpdateError):
    """Exception raised when the remote database cannot be downloaded.

    Parameters
    ----------
    message : str
        Description of the failure
    url : str, optional
        The URL being fetched
    status_code : int, optional
        HTTP status code of the response, if one was received
    original_error : Exception, optional
        The transport exception, if any

    """

    def __init__(
        self,
        message: str,
        url: str | None = None,
        status_code: int | None = None,
        original_error: Exception | None = None,
    ):
        """Initialize the fetch error."""
        super().__init__(message, original_error=original_error)
        self.url = url
        self.status_code = status_code


class ExtractionError(UpdateError):
    """Exception raised when a downloaded database cannot be unpacked or verified."""
