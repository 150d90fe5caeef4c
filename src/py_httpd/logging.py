"""Server logging — an in-memory access and error log.

The logger records structured log entries for server events: which
request came in, what was sent back, and which connections failed.

Real web servers keep an access log (one line per request) and an error
log.  Our logger keeps both in a single bounded buffer:

- **LogLevel** — severity levels ordered for filtering (DEBUG < ERROR).
- **LogEntry** — a single structured record (level, message, source, peer).
- **Logger** — a bounded log with filtering, clearing and an optional
  sink that echoes entries as they arrive (the CLI prints to stderr).

Design choices:
    - **IntEnum for levels** so they compare naturally with ``<``.
    - **Frozen dataclass for entries** — log records should be immutable.
    - **Bounded deque** — a long-running server drops its oldest entries
      instead of growing without limit.
    - **Lock around append** — connection threads share one logger.
"""

import threading
from collections import deque
from collections.abc import Callable
from dataclasses import dataclass
from enum import IntEnum
from typing import TypeAlias

DEFAULT_CAPACITY = 10_000


class LogLevel(IntEnum):
    """Severity levels for log entries.

    Using IntEnum means levels compare with ``<`` / ``>`` naturally,
    which makes minimum-level filtering trivial.
    """

    DEBUG = 0
    INFO = 1
    WARNING = 2
    ERROR = 3


@dataclass(frozen=True)
class LogEntry:
    """A single structured log record.

    Attributes:
        level: The severity of this event.
        message: A human-readable description of what happened.
        source: The component that generated the event (e.g. "server").
        peer: The client address the event concerns ("-" if none).

    """

    level: LogLevel
    message: str
    source: str
    peer: str = "-"

    def __str__(self) -> str:
        """Format as ``[LEVEL] source: message`` (with the peer if known)."""
        if self.peer == "-":
            return f"[{self.level.name}] {self.source}: {self.message}"
        return f"[{self.level.name}] {self.source} {self.peer}: {self.message}"


LogSink: TypeAlias = Callable[[LogEntry], None]


class Logger:
    """Bounded log buffer with filtering.

    The logger collects ``LogEntry`` records and provides simple
    querying by level and/or source.  When a *sink* is given, every
    entry at or above *min_level* is also passed to it as it is logged.
    """

    def __init__(
        self,
        *,
        capacity: int = DEFAULT_CAPACITY,
        sink: LogSink | None = None,
        min_level: LogLevel = LogLevel.INFO,
    ) -> None:
        """Create an empty logger.

        Args:
            capacity: Maximum number of entries kept.
            sink: Optional callable that receives each echoed entry.
            min_level: Lowest level passed to the sink.

        """
        self._entries: deque[LogEntry] = deque(maxlen=capacity)
        self._lock = threading.Lock()
        self._sink = sink
        self._min_level = min_level

    @property
    def entries(self) -> list[LogEntry]:
        """Return all kept log entries in chronological order."""
        with self._lock:
            return list(self._entries)

    def log(
        self,
        level: LogLevel,
        message: str,
        *,
        source: str,
        peer: str = "-",
    ) -> None:
        """Append a new entry to the log.

        Args:
            level: Severity of the event.
            message: Human-readable event description.
            source: Component that generated the event.
            peer: Client address associated with the event.

        """
        entry = LogEntry(level=level, message=message, source=source, peer=peer)
        with self._lock:
            self._entries.append(entry)
        if self._sink is not None and level >= self._min_level:
            self._sink(entry)

    def filter(
        self,
        *,
        min_level: LogLevel | None = None,
        source: str | None = None,
    ) -> list[LogEntry]:
        """Return entries matching the given criteria.

        Args:
            min_level: If set, only return entries at or above this level.
            source: If set, only return entries from this source.

        Returns:
            A filtered list of log entries.

        """
        result = self.entries
        if min_level is not None:
            result = [e for e in result if e.level >= min_level]
        if source is not None:
            result = [e for e in result if e.source == source]
        return result

    def clear(self) -> None:
        """Remove all log entries."""
        with self._lock:
            self._entries.clear()
