"""
session.py - One sender/receiver session
Wires the record store, ingestion, transfer and verification together
"""

import asyncio
import random
from pathlib import Path
from typing import Iterable, List, Optional
import logging

from .audit import AuditLog, LogAction
from .config import ZapConfig
from .errors import ContentUnavailable, ReadError
from .ingest import FileSource, IngestionPipeline, PathSource
from .integrity import DownloadLink, Fingerprinter, IntegrityVerifier, LinkRegistry
from .store import (
    Batch, FileRecord, FileRecordStore, ReadyCleared, ReceivedCleared, TransferEntry,
    BatchSettled, BatchFailed, FileStatus
)
from .transfer import (
    AsyncioClock, ChunkedProgressSource, Clock, ConnectionStatus, ProgressSource,
    RandomProgressSource, SimulatedConnection, TransferStateMachine
)

logger = logging.getLogger(__name__)


class ZapFileSession:
    """ZapFile session facade"""

    def __init__(self, config: Optional[ZapConfig] = None, clock: Optional[Clock] = None,
                 progress_source: Optional[ProgressSource] = None,
                 rng: Optional[random.Random] = None):
        self.config = config or ZapConfig()
        self.clock = clock or AsyncioClock()

        self.audit = AuditLog(self.config.log_capacity, now=self.clock.now)
        self.store = FileRecordStore()
        self.fingerprinter = Fingerprinter(
            self.config.checksum_algorithm, strict=self.config.strict_checksum
        )
        self.pipeline = IngestionPipeline(
            self.store, self.fingerprinter, self.audit, self.config.default_media_type
        )

        if progress_source is None:
            progress_source = self._default_progress_source(rng)
        self.machine = TransferStateMachine(
            self.store,
            self.clock,
            progress_source,
            self.audit,
            tick_interval=self.config.tick_interval,
            settle_delay=self.config.settle_delay
        )

        self.links = LinkRegistry(self.clock, self.config.link_ttl)
        self.verifier = IntegrityVerifier(
            self.links, self.audit, self.config.checksum_algorithm,
            self.config.default_media_type
        )
        self.connection = SimulatedConnection(
            self.store,
            self.clock,
            self.config.connect_delay,
            on_disconnect=lambda: self.machine.cancel("Connection lost")
        )

    def _default_progress_source(self, rng: Optional[random.Random]) -> ProgressSource:
        if self.config.progress_mode == "chunked":
            return ChunkedProgressSource(self.config.chunk_size)
        return RandomProgressSource(self.config.progress_min, self.config.progress_max, rng)

    @property
    def session_id(self) -> str:
        return self.config.session_id

    # Sender side

    async def add_files(self, sources: Iterable[FileSource]) -> List[FileRecord]:
        """Ingest sources into the ready set"""
        return await self.pipeline.ingest(sources)

    async def add_paths(self, paths: Iterable[Path]) -> List[FileRecord]:
        """Ingest local files; unreadable paths are logged and skipped"""
        sources = []
        for path in paths:
            try:
                sources.append(PathSource(path))
            except ReadError as e:
                self.audit.append(
                    LogAction.ERROR,
                    Path(path).name,
                    0,
                    "",
                    error=str(e),
                    details="Failed to process uploaded file"
                )
        return await self.add_files(sources)

    def send(self) -> Optional[Batch]:
        return self.machine.send()

    def cancel(self, reason: str = "Transfer cancelled") -> bool:
        return self.machine.cancel(reason)

    def clear_ready(self):
        self.store.dispatch(ReadyCleared())

    @property
    def ready(self):
        return self.store.ready

    @property
    def progress(self) -> float:
        return self.store.progress

    # Connection

    def connect(self, session_id: Optional[str] = None) -> bool:
        return self.connection.connect(session_id or self.session_id)

    def disconnect(self):
        self.connection.disconnect()

    @property
    def connection_status(self) -> ConnectionStatus:
        return self.connection.status

    # Receiver side

    @property
    def received(self):
        return self.store.received

    def download(self, entry_id: str) -> DownloadLink:
        """Verify a received file and release it under a transient link"""
        entry = self.store.get_received(entry_id)
        if entry is None:
            raise ContentUnavailable(f"No received file with id {entry_id}")
        return self.verifier.release(entry)

    def download_entry(self, entry: TransferEntry) -> DownloadLink:
        return self.verifier.release(entry)

    async def save(self, link: DownloadLink, directory: Path) -> Path:
        return await self.links.save(link, directory)

    def clear_received(self):
        self.store.dispatch(ReceivedCleared())

    def clear_logs(self):
        self.audit.clear()

    # Waiting helpers for asyncio-driven sessions

    async def wait_connected(self):
        """Wait until the simulated connection is established"""
        if self.store.connected:
            return
        done = asyncio.get_running_loop().create_future()

        def listener(event, state):
            if state.connected and not done.done():
                done.set_result(None)

        unsubscribe = self.store.subscribe(listener)
        try:
            await done
        finally:
            unsubscribe()

    async def wait_for_batch(self) -> Optional[Batch]:
        """
        Wait until the current batch settles or fails
        Returns the final batch, or None if nothing was in flight
        """
        batch = self.store.batch
        if batch is None:
            return None
        if batch.status is FileStatus.FAILED:
            return batch

        done = asyncio.get_running_loop().create_future()
        latest = [batch]

        def listener(event, state):
            if done.done():
                return
            if isinstance(event, BatchSettled):
                done.set_result(latest[0])
            elif isinstance(event, BatchFailed):
                done.set_result(state.batch)
            elif state.batch is not None:
                latest[0] = state.batch

        unsubscribe = self.store.subscribe(listener)
        try:
            return await done
        finally:
            unsubscribe()

    def get_statistics(self) -> dict:
        stats = self.store.get_statistics()
        stats.update({
            'session_id': self.session_id,
            'connection': self.connection.status.value,
            'log_entries': len(self.audit),
            'active_links': self.links.active
        })
        return stats
