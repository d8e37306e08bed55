"""Download-time integrity verification"""

import logging

from ..audit import AuditLog, LogAction
from ..config import DEFAULT_MEDIA_TYPE
from ..errors import (
    ChecksumError, ContentUnavailable, IntegrityError, IntegrityMismatch,
    SizeMismatch, UnverifiedContent
)
from ..store import TransferEntry
from .checksum import compute_fingerprint
from .links import Blob, DownloadLink, LinkRegistry

logger = logging.getLogger(__name__)


class IntegrityVerifier:
    """
    Proves a received entry is byte-exact before releasing it
    Never modifies the entry it checks
    """

    def __init__(self, links: LinkRegistry, audit: AuditLog, algorithm: str = "SHA256",
                 default_media_type: str = DEFAULT_MEDIA_TYPE):
        self.links = links
        self.audit = audit
        self.algorithm = algorithm
        self.default_media_type = default_media_type

    def verify(self, entry: TransferEntry) -> Blob:
        """Check content, fingerprint and size; returns the output blob"""
        if entry.content is None:
            raise ContentUnavailable("File content not available")

        if entry.checksum:
            if not entry.verified:
                raise UnverifiedContent(
                    "File has no verified checksum; integrity cannot be proven"
                )
            try:
                actual = compute_fingerprint(entry.content, self.algorithm)
            except ChecksumError as e:
                raise UnverifiedContent(f"Cannot recompute checksum: {e}") from e
            if actual != entry.checksum:
                raise IntegrityMismatch(entry.checksum, actual)

        blob = Blob(bytes(entry.content), entry.media_type or self.default_media_type)
        if blob.size != entry.size:
            raise SizeMismatch(entry.size, blob.size)

        return blob

    def release(self, entry: TransferEntry) -> DownloadLink:
        """
        Verify an entry and publish it under a transient link
        Failures are logged and re-raised
        """
        self.audit.append(
            LogAction.DOWNLOAD,
            entry.name,
            entry.size,
            entry.media_type,
            checksum=entry.checksum,
            details="Starting download process"
        )

        try:
            blob = self.verify(entry)
        except IntegrityError as e:
            self.audit.append(
                LogAction.ERROR,
                entry.name,
                entry.size,
                entry.media_type,
                error=str(e),
                details="Download failed"
            )
            raise

        link = self.links.create(blob, entry.name)

        self.audit.append(
            LogAction.DOWNLOAD,
            entry.name,
            entry.size,
            entry.media_type,
            checksum=entry.checksum,
            details="Download completed successfully"
        )
        return link
