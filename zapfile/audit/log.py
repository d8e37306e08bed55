"""
audit/log.py - Bounded lifecycle history
Diagnostic only; nothing reads it to make decisions
"""

import json
from collections import deque
from dataclasses import dataclass, asdict
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Callable, Deque, List, Optional
import logging

logger = logging.getLogger(__name__)

DEFAULT_CAPACITY = 100


class LogAction(str, Enum):
    """Lifecycle event kinds"""
    UPLOAD = "upload"
    TRANSFER = "transfer"
    DOWNLOAD = "download"
    ERROR = "error"


@dataclass(frozen=True)
class LogEntry:
    """Single audit record"""
    timestamp: datetime
    action: LogAction
    file_name: str
    file_size: int
    file_type: str
    checksum: Optional[str] = None
    error: Optional[str] = None
    details: Optional[str] = None

    def to_dict(self) -> dict:
        data = asdict(self)
        data['timestamp'] = self.timestamp.isoformat()
        data['action'] = self.action.value
        return data


class AuditLog:
    """
    Append-only log keeping the most recent entries, newest first
    Every append is mirrored to the standard logger
    """

    def __init__(self, capacity: int = DEFAULT_CAPACITY,
                 now: Callable[[], datetime] = datetime.now):
        self.capacity = capacity
        self._now = now
        self._entries: Deque[LogEntry] = deque(maxlen=capacity)

    def append(self, action: LogAction, file_name: str, file_size: int,
               file_type: str, checksum: Optional[str] = None,
               error: Optional[str] = None, details: Optional[str] = None) -> LogEntry:
        """Record an event; the oldest entry is evicted beyond capacity"""
        entry = LogEntry(
            timestamp=self._now(),
            action=LogAction(action),
            file_name=file_name,
            file_size=file_size,
            file_type=file_type,
            checksum=checksum,
            error=error,
            details=details
        )
        self._entries.appendleft(entry)

        message = f"[ZapFile {entry.action.value.upper()}] {file_name} ({file_size} bytes)"
        if details:
            message += f": {details}"
        if entry.action is LogAction.ERROR:
            logger.error(f"{message} - {error}")
        else:
            logger.info(message)

        return entry

    def entries(self) -> List[LogEntry]:
        """Entries newest first"""
        return list(self._entries)

    def latest(self) -> Optional[LogEntry]:
        return self._entries[0] if self._entries else None

    def clear(self):
        self._entries.clear()

    def export(self, output_file: Path):
        """Export entries as JSON for offline analysis"""
        with open(output_file, 'w') as f:
            json.dump([e.to_dict() for e in self._entries], f, indent=2)
        logger.info(f"Exported {len(self._entries)} log entries to {output_file}")

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self):
        return iter(list(self._entries))
