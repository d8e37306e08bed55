"""
transfer/machine.py - Batch transfer state machine
pending -> transferring -> completed, or failed from transferring
"""

import secrets
from typing import Optional
import logging

from ..audit import AuditLog, LogAction
from ..store import (
    Batch, BatchCompleted, BatchCreated, BatchFailed, BatchSettled, BatchStarted,
    FileRecordStore, FileStatus, ProgressAdvanced, TransferEntry
)
from .clock import Clock, TimerHandle
from .progress import ProgressSource

logger = logging.getLogger(__name__)


class TransferStateMachine:
    """
    Advances one batch at a time on clock ticks
    Progress is tracked per batch; all entries move together
    """

    def __init__(self, store: FileRecordStore, clock: Clock,
                 progress_source: ProgressSource, audit: AuditLog,
                 tick_interval: float = 0.3, settle_delay: float = 2.0):
        self.store = store
        self.clock = clock
        self.progress_source = progress_source
        self.audit = audit
        self.tick_interval = tick_interval
        self.settle_delay = settle_delay

        self._ticker: Optional[TimerHandle] = None
        self._settle: Optional[TimerHandle] = None

    def can_send(self) -> bool:
        """Ready files exist, the peer is connected and no batch is unsettled"""
        state = self.store.state
        if not state.ready or not state.connected:
            return False
        return state.batch is None or state.batch.status is FileStatus.FAILED

    def send(self) -> Optional[Batch]:
        """
        Start transferring the ready set
        Returns None without touching state when sending is not possible
        """
        if not self.can_send():
            state = self.store.state
            logger.debug(
                f"Send ignored (ready={len(state.ready)}, connected={state.connected}, "
                f"batch={state.batch.status.value if state.batch else None})"
            )
            return None

        batch_id = f"batch-{secrets.token_hex(4)}"
        batch = Batch(
            id=batch_id,
            entries=tuple(TransferEntry.from_record(r, batch_id) for r in self.store.ready)
        )

        # a failing source leaves the state untouched
        self.progress_source.start(batch)
        self.store.dispatch(BatchCreated(batch))
        self.store.dispatch(BatchStarted())

        self.audit.append(
            LogAction.TRANSFER,
            f"{len(batch.entries)} files",
            batch.total_size,
            "batch",
            details=f"Starting transfer of {len(batch.entries)} files"
        )

        self._ticker = self.clock.call_every(self.tick_interval, self._tick)
        return self.store.batch

    def _tick(self):
        batch = self.store.batch
        if batch is None or batch.status is not FileStatus.TRANSFERRING:
            self._stop_ticker()
            return

        try:
            increment = self.progress_source.next_increment()
        except Exception as e:
            logger.error(f"Progress source failed for batch {batch.id}: {e}", exc_info=True)
            self._fail(str(e) or type(e).__name__)
            return

        if increment < 0:
            self._fail(f"Negative progress increment: {increment}")
            return

        progress = min(100.0, batch.progress + increment)
        self.store.dispatch(ProgressAdvanced(progress))

        if progress >= 100.0:
            self._complete()

    def _complete(self):
        self._stop_ticker()
        self.store.dispatch(BatchCompleted(self.clock.now()))

        for entry in self.store.batch.entries:
            self.audit.append(
                LogAction.TRANSFER,
                entry.name,
                entry.size,
                entry.media_type,
                checksum=entry.checksum,
                details="File transfer completed successfully"
            )

        logger.info(f"Batch {self.store.batch.id} completed ({len(self.store.batch.entries)} files)")
        self._settle = self.clock.call_later(self.settle_delay, self._settle_batch)

    def _settle_batch(self):
        self._settle = None
        batch = self.store.batch
        if batch is not None and batch.status is FileStatus.COMPLETED:
            self.store.dispatch(BatchSettled())

    def cancel(self, reason: str = "Transfer cancelled") -> bool:
        """Fail the in-flight batch; ready files stay available for a resend"""
        batch = self.store.batch
        if batch is None or batch.status is not FileStatus.TRANSFERRING:
            return False
        self._fail(reason)
        return True

    def _fail(self, reason: str):
        self._stop_ticker()
        batch = self.store.dispatch(BatchFailed(reason)).batch
        self.audit.append(
            LogAction.ERROR,
            f"{len(batch.entries)} files",
            batch.total_size,
            "batch",
            error=reason,
            details=f"Transfer failed at {batch.progress:.0f}%"
        )

    def _stop_ticker(self):
        if self._ticker is not None:
            self._ticker.cancel()
            self._ticker = None
