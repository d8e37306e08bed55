"""Transient download links"""

import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta
from pathlib import Path
from typing import Dict, Optional
import logging

import aiofiles

from ..errors import LinkExpired
from ..transfer.clock import Clock, TimerHandle

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Blob:
    """Output bytes with their media type"""
    data: bytes
    media_type: str

    @property
    def size(self) -> int:
        return len(self.data)


@dataclass(frozen=True)
class DownloadLink:
    """Reference to a released blob; valid until revoked"""
    url: str
    file_name: str
    size: int
    media_type: str
    expires_at: datetime


class LinkRegistry:
    """
    Holds released blobs under blob: URLs
    Each URL is revoked automatically after the ttl
    """

    def __init__(self, clock: Clock, ttl: float = 1.0):
        self.clock = clock
        self.ttl = ttl
        self._blobs: Dict[str, Blob] = {}
        self._timers: Dict[str, TimerHandle] = {}

    def create(self, blob: Blob, file_name: str) -> DownloadLink:
        url = f"blob:zapfile/{secrets.token_hex(16)}"
        self._blobs[url] = blob
        self._timers[url] = self.clock.call_later(self.ttl, lambda: self.revoke(url))
        return DownloadLink(
            url=url,
            file_name=file_name,
            size=blob.size,
            media_type=blob.media_type,
            expires_at=self.clock.now() + timedelta(seconds=self.ttl)
        )

    def resolve(self, url: str) -> Blob:
        try:
            return self._blobs[url]
        except KeyError:
            raise LinkExpired(f"Download link is no longer valid: {url}") from None

    def revoke(self, url: str):
        self._blobs.pop(url, None)
        timer = self._timers.pop(url, None)
        if timer is not None:
            timer.cancel()

    def revoke_all(self):
        for url in list(self._blobs):
            self.revoke(url)

    @property
    def active(self) -> int:
        return len(self._blobs)

    async def save(self, link: DownloadLink, directory: Path,
                   file_name: Optional[str] = None) -> Path:
        """Write a linked blob into directory; the link must still be valid"""
        blob = self.resolve(link.url)
        directory = Path(directory)
        directory.mkdir(parents=True, exist_ok=True)

        # keep only the final path component of the declared name
        target = directory / Path(file_name or link.file_name).name
        async with aiofiles.open(target, 'wb') as f:
            await f.write(blob.data)

        logger.info(f"Saved {link.file_name} to {target}")
        return target
