"""
store/state.py - Application state and its transitions
State is immutable; every change is a named event applied by reduce()
"""

from dataclasses import dataclass, replace
from datetime import datetime
from typing import Optional, Tuple

from ..errors import TransferStateError
from .records import FileRecord, FileStatus, TransferEntry


@dataclass(frozen=True)
class Batch:
    """Records sent together; they share one status and progress value"""
    id: str
    entries: Tuple[TransferEntry, ...]
    status: FileStatus = FileStatus.PENDING
    progress: float = 0.0
    error: Optional[str] = None

    @property
    def total_size(self) -> int:
        return sum(e.size for e in self.entries)

    @property
    def record_ids(self) -> frozenset:
        return frozenset(e.id for e in self.entries)

    @property
    def in_flight(self) -> bool:
        return self.status in (FileStatus.PENDING, FileStatus.TRANSFERRING)

    def with_status(self, status: FileStatus, progress: Optional[float] = None,
                    received_at: Optional[datetime] = None, error: Optional[str] = None) -> 'Batch':
        progress = self.progress if progress is None else progress
        return replace(
            self,
            status=status,
            progress=progress,
            error=error,
            entries=tuple(e.advance(status, progress, received_at) for e in self.entries)
        )


@dataclass(frozen=True)
class AppState:
    """Sender and receiver state for one session"""
    ready: Tuple[FileRecord, ...] = ()
    received: Tuple[TransferEntry, ...] = ()
    batch: Optional[Batch] = None
    connected: bool = False

    @property
    def progress(self) -> float:
        return self.batch.progress if self.batch else 0.0

    @property
    def is_transferring(self) -> bool:
        return self.batch is not None and self.batch.in_flight


# Events

@dataclass(frozen=True)
class RecordsIngested:
    records: Tuple[FileRecord, ...]


@dataclass(frozen=True)
class ReadyCleared:
    pass


@dataclass(frozen=True)
class ReceivedCleared:
    pass


@dataclass(frozen=True)
class ConnectionChanged:
    connected: bool


@dataclass(frozen=True)
class BatchCreated:
    batch: Batch


@dataclass(frozen=True)
class BatchStarted:
    pass


@dataclass(frozen=True)
class ProgressAdvanced:
    progress: float


@dataclass(frozen=True)
class BatchCompleted:
    received_at: datetime


@dataclass(frozen=True)
class BatchFailed:
    reason: str


@dataclass(frozen=True)
class BatchSettled:
    pass


def _require_batch(state: AppState, *statuses: FileStatus) -> Batch:
    batch = state.batch
    if batch is None:
        raise TransferStateError("No batch in progress")
    if batch.status not in statuses:
        expected = ", ".join(s.value for s in statuses)
        raise TransferStateError(
            f"Batch {batch.id} is {batch.status.value}, expected {expected}"
        )
    return batch


def reduce(state: AppState, event) -> AppState:
    """Apply one event, returning the new state"""
    if isinstance(event, RecordsIngested):
        return replace(state, ready=state.ready + tuple(event.records))

    if isinstance(event, ReadyCleared):
        if state.is_transferring:
            raise TransferStateError("Cannot clear ready files during a transfer")
        return replace(state, ready=())

    if isinstance(event, ReceivedCleared):
        return replace(state, received=())

    if isinstance(event, ConnectionChanged):
        return replace(state, connected=event.connected)

    if isinstance(event, BatchCreated):
        if state.batch is not None and state.batch.status is not FileStatus.FAILED:
            raise TransferStateError(f"Batch {state.batch.id} has not settled yet")
        if not event.batch.entries:
            raise TransferStateError("Cannot create an empty batch")
        if event.batch.status is not FileStatus.PENDING:
            raise TransferStateError("New batches must start pending")
        return replace(state, batch=event.batch)

    if isinstance(event, BatchStarted):
        batch = _require_batch(state, FileStatus.PENDING)
        return replace(state, batch=batch.with_status(FileStatus.TRANSFERRING))

    if isinstance(event, ProgressAdvanced):
        batch = _require_batch(state, FileStatus.TRANSFERRING)
        if not batch.progress <= event.progress <= 100:
            raise TransferStateError(
                f"Progress must move forward within 0-100: {batch.progress} -> {event.progress}"
            )
        return replace(state, batch=batch.with_status(FileStatus.TRANSFERRING, event.progress))

    if isinstance(event, BatchCompleted):
        batch = _require_batch(state, FileStatus.TRANSFERRING)
        if batch.progress < 100:
            raise TransferStateError(f"Batch {batch.id} completed at {batch.progress}%")
        done = batch.with_status(FileStatus.COMPLETED, 100.0, event.received_at)
        sent = done.record_ids
        return replace(
            state,
            batch=done,
            ready=tuple(r for r in state.ready if r.id not in sent),
            received=state.received + done.entries
        )

    if isinstance(event, BatchFailed):
        batch = _require_batch(state, FileStatus.TRANSFERRING)
        return replace(state, batch=batch.with_status(FileStatus.FAILED, error=event.reason))

    if isinstance(event, BatchSettled):
        _require_batch(state, FileStatus.COMPLETED)
        return replace(state, batch=None)

    raise TypeError(f"Unknown event: {event!r}")
