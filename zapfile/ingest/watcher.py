"""
ingest/watcher.py - Drop folder watching
Files appearing in the folder are handed to an ingest coroutine on the event loop
"""

import asyncio
from pathlib import Path
from typing import Awaitable, Callable, Dict, List, Optional
import logging

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from ..errors import ReadError
from .sources import FileSource, PathSource

logger = logging.getLogger(__name__)

IngestCallback = Callable[[List[FileSource]], Awaitable[object]]

DEFAULT_QUIET_PERIOD = 0.5  # seconds without events before a file is ingested


class DropFolderHandler(FileSystemEventHandler):
    """
    Translates filesystem events into ingest calls
    Runs on the observer thread; work is scheduled onto the loop.
    Events for one path are coalesced until it has been quiet for quiet_period,
    so a file still being written is submitted once, at its final size.
    """

    def __init__(self, ingest: IngestCallback, loop: asyncio.AbstractEventLoop,
                 quiet_period: float = DEFAULT_QUIET_PERIOD):
        super().__init__()
        self.ingest = ingest
        self.loop = loop
        self.quiet_period = quiet_period
        self._pending: Dict[Path, asyncio.TimerHandle] = {}
        self._tasks = set()

    def on_created(self, event: FileSystemEvent):
        self._submit(event.src_path, event.is_directory)

    def on_modified(self, event: FileSystemEvent):
        self._submit(event.src_path, event.is_directory)

    def on_moved(self, event: FileSystemEvent):
        self._submit(event.dest_path, event.is_directory)

    def _submit(self, path, is_directory: bool):
        if is_directory:
            return
        path = Path(path.decode() if isinstance(path, bytes) else path)
        if path.name.startswith('.'):
            return
        self.loop.call_soon_threadsafe(self._schedule, path)

    def _schedule(self, path: Path):
        # Loop thread from here on
        pending = self._pending.pop(path, None)
        if pending is not None:
            pending.cancel()
        self._pending[path] = self.loop.call_later(self.quiet_period, self._ingest_path, path)

    def _ingest_path(self, path: Path):
        self._pending.pop(path, None)
        try:
            source = PathSource(path)
        except ReadError as e:
            # File vanished between the event and the stat
            logger.debug(f"Ignoring event for {path}: {e}")
            return

        task = asyncio.ensure_future(self.ingest([source]))
        self._tasks.add(task)
        task.add_done_callback(self._ingest_done)

    def _ingest_done(self, task: asyncio.Future):
        self._tasks.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.error(f"Ingest of dropped file failed: {error}", exc_info=error)

    def cancel_pending(self):
        """Drop coalescing timers that have not fired yet"""
        for handle in self._pending.values():
            handle.cancel()
        self._pending.clear()


class DropFolderWatcher:
    """Watches a directory and ingests every regular file placed in it"""

    def __init__(self, folder: Path, ingest: IngestCallback,
                 quiet_period: float = DEFAULT_QUIET_PERIOD):
        self.folder = Path(folder)
        self.ingest = ingest
        self.quiet_period = quiet_period
        self._observer: Optional[Observer] = None
        self._handler: Optional[DropFolderHandler] = None

    async def ingest_existing(self) -> None:
        """Ingest files already present when watching starts"""
        sources = []
        for path in sorted(self.folder.iterdir()):
            if path.is_file() and not path.name.startswith('.'):
                try:
                    sources.append(PathSource(path))
                except ReadError as e:
                    logger.warning(f"Skipping {path}: {e}")
        if sources:
            await self.ingest(sources)

    def start(self, loop: Optional[asyncio.AbstractEventLoop] = None):
        """Start the observer thread"""
        self.folder.mkdir(parents=True, exist_ok=True)
        loop = loop or asyncio.get_running_loop()

        self._handler = DropFolderHandler(self.ingest, loop, self.quiet_period)
        self._observer = Observer()
        self._observer.schedule(self._handler, str(self.folder), recursive=False)
        self._observer.start()
        logger.info(f"Watching drop folder {self.folder}")

    def stop(self):
        if self._observer is None:
            return
        self._observer.stop()
        self._observer.join()
        self._observer = None
        if self._handler is not None:
            self._handler.cancel_pending()
            self._handler = None
        logger.info(f"Stopped watching {self.folder}")

    @property
    def running(self) -> bool:
        return self._observer is not None and self._observer.is_alive()
