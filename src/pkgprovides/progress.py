#  Copyright (c) 2025 Tom Villani, Ph.D.
#
# src/pkgprovides/progress.py
"""Progress callback system for database downloads and scans.

Long-running operations (fetching the remote database, scanning a large local
one) report their progress to an optional callback so that embedders and the
CLI can draw progress bars without the library knowing about terminals.

Examples
--------
    >>> from pkgprovides import search_database
    >>> from pkgprovides.progress import ProgressEvent
    >>>
    >>> def handler(event: ProgressEvent) -> None:
    ...     print(event)
    >>>
    >>> index = search_database("libcurl", progress_callback=handler)

"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Literal

logger = logging.getLogger(__name__)

EventType = Literal["started", "item_done", "finished", "error"]


@dataclass
class ProgressEvent:
    """Progress event emitted by downloads and database scans.

    Parameters
    ----------
    event_type : EventType
        - "started": the operation has begun; ``total`` is set when known
        - "item_done": a chunk of work completed; ``current`` is the running count
        - "finished": the operation completed successfully
        - "error": the operation failed; details in ``metadata["error"]``
    message : str
        Human-readable description of the event
    current : int, default 0
        Units processed so far (bytes for both downloads and scans)
    total : int, default 0
        Total units to process, 0 when unknown
    metadata : dict, default empty
        Event-specific information; ``metadata["stage"]`` is ``"download"``,
        ``"extract"`` or ``"scan"``.

    """

    event_type: EventType
    message: str
    current: int = 0
    total: int = 0
    metadata: dict[str, Any] = field(default_factory=dict)

    def __str__(self) -> str:
        """Return human-readable string representation."""
        progress = f"({self.current}/{self.total})" if self.total > 0 else ""
        return f"[{self.event_type.upper()}] {self.message} {progress}".strip()


# Type alias for progress callback functions
ProgressCallback = Callable[[ProgressEvent], None]


def emit_progress(
    callback: ProgressCallback | None,
    event_type: EventType,
    message: str,
    current: int = 0,
    total: int = 0,
    **metadata: Any,
) -> None:
    """Send an event to ``callback`` if one was supplied.

    Exceptions raised by the callback are logged and swallowed so that a
    faulty progress display cannot abort a download or a scan.
    """
    if callback is None:
        return
    event = ProgressEvent(event_type, message, current=current, total=total, metadata=metadata)
    try:
        callback(event)
    except Exception as exc:
        logger.warning("Progress callback failed on %s: %s", event, exc)
