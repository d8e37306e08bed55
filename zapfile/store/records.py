"""Immutable file and transfer records"""

import secrets
import time
from dataclasses import dataclass, replace
from datetime import datetime
from enum import Enum
from typing import Optional


class FileStatus(str, Enum):
    """Batch-wide transfer status"""
    PENDING = "pending"
    TRANSFERRING = "transferring"
    COMPLETED = "completed"
    FAILED = "failed"


def generate_file_id() -> str:
    """Unique record id: file-<epoch ms>-<random>"""
    return f"file-{int(time.time() * 1000)}-{secrets.token_hex(4)}"


@dataclass(frozen=True)
class FileRecord:
    """Ingested file: bytes, metadata and fingerprint"""
    id: str
    name: str
    size: int
    media_type: str
    last_modified: float
    content: bytes
    checksum: str
    verified: bool = True

    @property
    def dedup_key(self):
        return (self.name, self.size)


@dataclass(frozen=True)
class TransferEntry:
    """FileRecord carried through a batch transfer"""
    id: str
    name: str
    size: int
    media_type: str
    last_modified: float
    batch_id: str
    status: FileStatus = FileStatus.PENDING
    progress: float = 0.0
    content: Optional[bytes] = None
    checksum: Optional[str] = None
    verified: bool = True
    received_at: Optional[datetime] = None

    @classmethod
    def from_record(cls, record: FileRecord, batch_id: str) -> 'TransferEntry':
        return cls(
            id=record.id,
            name=record.name,
            size=record.size,
            media_type=record.media_type,
            last_modified=record.last_modified,
            batch_id=batch_id,
            content=record.content,
            checksum=record.checksum,
            verified=record.verified
        )

    def advance(self, status: FileStatus, progress: float,
                received_at: Optional[datetime] = None) -> 'TransferEntry':
        return replace(self, status=status, progress=progress,
                       received_at=received_at or self.received_at)
