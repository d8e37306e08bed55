"""Ingestion pipeline: raw files to fingerprinted records"""

from typing import Iterable, List, Optional, Set, Tuple
import logging

from ..audit import AuditLog, LogAction
from ..config import DEFAULT_MEDIA_TYPE
from ..errors import ChecksumError, ReadError
from ..integrity.checksum import Fingerprinter
from ..store import FileRecord, FileRecordStore, RecordsIngested, generate_file_id
from .sources import FileSource

logger = logging.getLogger(__name__)


class IngestionPipeline:
    """
    Reads sources one at a time into immutable FileRecords
    Files already waiting in the ready set (same name and size) are skipped
    """

    def __init__(self, store: FileRecordStore, fingerprinter: Fingerprinter,
                 audit: AuditLog, default_media_type: str = DEFAULT_MEDIA_TYPE):
        self.store = store
        self.fingerprinter = fingerprinter
        self.audit = audit
        self.default_media_type = default_media_type
        self._in_flight: Set[Tuple[str, int]] = set()

    def is_duplicate(self, source: FileSource) -> bool:
        key = (source.name, source.size)
        return key in self._in_flight or self.store.has_ready(*key)

    async def ingest(self, sources: Iterable[FileSource]) -> List[FileRecord]:
        """
        Process sources sequentially and append the results to the ready set
        Returns the records that were added
        """
        # Reserve keys before the first await so overlapping calls see them
        accepted: List[FileSource] = []
        reserved: Set[Tuple[str, int]] = set()
        for source in sources:
            if self.is_duplicate(source):
                logger.debug(f"Skipping duplicate file {source.name} ({source.size} bytes)")
                continue
            key = (source.name, source.size)
            self._in_flight.add(key)
            reserved.add(key)
            accepted.append(source)

        try:
            processed = []
            for source in accepted:
                record = await self._process(source)
                if record is not None:
                    processed.append(record)

            if processed:
                self.store.dispatch(RecordsIngested(tuple(processed)))
                logger.info(f"Ingested {len(processed)}/{len(accepted)} files")
            return processed
        finally:
            self._in_flight -= reserved

    async def _process(self, source: FileSource) -> Optional[FileRecord]:
        """Read and fingerprint one source; failures are logged, not raised"""
        self.audit.append(
            LogAction.UPLOAD,
            source.name,
            source.size,
            source.media_type,
            details=f"Processing file: {source.name} ({source.size} bytes)"
        )

        try:
            content = bytes(await source.read())
            fingerprint = self.fingerprinter.fingerprint(content)
        except (ReadError, ChecksumError) as e:
            self.audit.append(
                LogAction.ERROR,
                source.name,
                source.size,
                source.media_type,
                error=str(e),
                details="Failed to process uploaded file"
            )
            return None

        record = FileRecord(
            id=generate_file_id(),
            name=source.name,
            size=source.size,
            media_type=source.media_type or self.default_media_type,
            last_modified=source.last_modified,
            content=content,
            checksum=fingerprint.value,
            verified=fingerprint.verified
        )

        if fingerprint.verified:
            details = f"File processed successfully. Checksum: {record.checksum[:8]}..."
        else:
            details = "File processed with an unverified fallback checksum"

        self.audit.append(
            LogAction.UPLOAD,
            record.name,
            record.size,
            source.media_type,
            checksum=record.checksum,
            details=details
        )
        return record
