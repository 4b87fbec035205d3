"""
Mocku Request Log

Bounded in-memory log of requests served by the mock server.
"""

import threading
from collections import deque
from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional


@dataclass
class RequestLogEntry:
    """One served request."""

    method: str
    path: str
    query_string: str = ""
    headers: Dict[str, str] = field(default_factory=dict)
    request_body: str = ""
    status_code: int = 0
    response_headers: Dict[str, str] = field(default_factory=dict)
    response_body: str = ""
    matched: bool = False
    rule_source: Optional[str] = None
    response_time_ms: float = 0.0
    client_ip: str = "unknown"
    timestamp: str = field(default_factory=lambda: datetime.now().isoformat())

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return asdict(self)


class RequestLog:
    """
    FIFO log of recent requests.

    Example:
        log = RequestLog(limit=100)
        log.record(RequestLogEntry(method='GET', path='/users/1', status_code=200))
        recent = log.entries()
    """

    def __init__(self, limit: int = 1000):
        """
        Initialize request log.

        Args:
            limit: Maximum entries kept (0 = unlimited)
        """
        self.limit = limit
        self._entries = deque(maxlen=limit if limit > 0 else None)
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._entries)

    def record(self, entry: RequestLogEntry):
        """Append an entry, dropping the oldest when full."""
        with self._lock:
            self._entries.append(entry)

    def entries(self, newest_first: bool = True) -> List[RequestLogEntry]:
        """Copy of the logged entries."""
        with self._lock:
            items = list(self._entries)
        return list(reversed(items)) if newest_first else items

    def clear(self) -> int:
        """
        Remove all entries.

        Returns:
            Number of entries removed
        """
        with self._lock:
            count = len(self._entries)
            self._entries.clear()
        return count
