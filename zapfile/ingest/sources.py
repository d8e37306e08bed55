"""Raw file sources fed to the ingestion pipeline"""

import mimetypes
import time
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional
import logging

import aiofiles

from ..errors import ReadError

logger = logging.getLogger(__name__)


class FileSource(ABC):
    """
    A file handle from a selection surface
    Exposes metadata up front and the bytes through an async read
    """

    name: str
    size: int
    media_type: str
    last_modified: float

    @abstractmethod
    async def read(self) -> bytes:
        """Read the complete content; raises ReadError"""

    def __repr__(self):
        return f"{type(self).__name__}(name={self.name!r}, size={self.size})"


class PathSource(FileSource):
    """File on the local filesystem, read with aiofiles"""

    def __init__(self, path: Path, media_type: Optional[str] = None):
        self.path = Path(path)
        try:
            stat = self.path.stat()
        except OSError as e:
            raise ReadError(f"Cannot stat {self.path}: {e}") from e

        self.name = self.path.name
        self.size = stat.st_size
        self.last_modified = stat.st_mtime
        if media_type is None:
            media_type, _ = mimetypes.guess_type(self.path.name)
        self.media_type = media_type or ""

    async def read(self) -> bytes:
        """Read the file; fails if it no longer matches the size seen at stat time"""
        try:
            async with aiofiles.open(self.path, 'rb') as f:
                content = await f.read()
            current_size = self.path.stat().st_size
        except OSError as e:
            raise ReadError(f"FileReader error: {e}") from e

        if len(content) != self.size or current_size != self.size:
            raise ReadError(
                f"File changed while reading: {self.name} "
                f"(expected {self.size} bytes, read {len(content)})"
            )
        return content


class BytesSource(FileSource):
    """In-memory file content"""

    def __init__(self, name: str, content: bytes, media_type: str = "",
                 last_modified: Optional[float] = None, size: Optional[int] = None):
        self.name = name
        self._content = bytes(content)
        self.size = len(self._content) if size is None else size
        self.media_type = media_type
        self.last_modified = time.time() if last_modified is None else last_modified

    async def read(self) -> bytes:
        return self._content
