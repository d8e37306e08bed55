"""Test drop folder watching"""

import asyncio
import logging

import pytest
from watchdog.events import DirCreatedEvent, FileCreatedEvent, FileModifiedEvent, FileMovedEvent

from zapfile.ingest import DropFolderHandler, DropFolderWatcher

QUIET = 0.05


class Collector:
    """Ingest callback that remembers what it was given"""

    def __init__(self):
        self.names = []
        self.sizes = []

    async def __call__(self, sources):
        self.names.extend(s.name for s in sources)
        self.sizes.extend(s.size for s in sources)
        return sources


async def wait_for(predicate, timeout=5.0):
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not met in time")
        await asyncio.sleep(0.01)


@pytest.fixture
def collector():
    return Collector()


def make_handler(ingest):
    return DropFolderHandler(ingest, asyncio.get_running_loop(), quiet_period=QUIET)


class TestDropFolderHandler:
    """Test event translation"""

    @pytest.mark.asyncio
    async def test_created_file_ingested(self, collector, temp_dir):
        handler = make_handler(collector)
        path = temp_dir / "report.csv"
        path.write_text("a,b\n1,2\n")
        handler.on_created(FileCreatedEvent(str(path)))

        await wait_for(lambda: collector.names)
        assert collector.names == ["report.csv"]

    @pytest.mark.asyncio
    async def test_moved_file_uses_destination(self, collector, temp_dir):
        handler = make_handler(collector)
        path = temp_dir / "final.bin"
        path.write_bytes(b"\x00")
        handler.on_moved(FileMovedEvent(str(temp_dir / "partial.tmp"), str(path)))

        await wait_for(lambda: collector.names)
        assert collector.names == ["final.bin"]

    @pytest.mark.asyncio
    async def test_ignored_events(self, collector, temp_dir):
        handler = make_handler(collector)
        hidden = temp_dir / ".partial"
        hidden.write_bytes(b"x")
        handler.on_created(FileCreatedEvent(str(hidden)))
        handler.on_created(DirCreatedEvent(str(temp_dir / "sub")))
        handler.on_created(FileCreatedEvent(str(temp_dir / "vanished.txt")))

        await asyncio.sleep(QUIET * 4)
        assert collector.names == []

    @pytest.mark.asyncio
    async def test_events_for_growing_file_coalesced(self, collector, temp_dir):
        """A file written after its create event is submitted once, at its final size"""
        handler = make_handler(collector)
        path = temp_dir / "big.bin"
        path.write_bytes(b"")
        handler.on_created(FileCreatedEvent(str(path)))

        path.write_bytes(b"\x01" * 4096)
        handler.on_modified(FileModifiedEvent(str(path)))

        await wait_for(lambda: collector.names)
        await asyncio.sleep(QUIET * 2)
        assert collector.sizes == [4096]

    @pytest.mark.asyncio
    async def test_failing_ingest_is_logged(self, temp_dir, caplog):
        async def failing(sources):
            raise RuntimeError("store exploded")

        handler = make_handler(failing)
        path = temp_dir / "a.txt"
        path.write_text("a")

        with caplog.at_level(logging.ERROR, logger="zapfile.ingest.watcher"):
            handler.on_created(FileCreatedEvent(str(path)))
            await wait_for(lambda: "store exploded" in caplog.text)

        record = next(r for r in caplog.records if "store exploded" in r.getMessage())
        assert record.levelno == logging.ERROR
        assert record.exc_info is not None


class TestDropFolderWatcher:
    """Test the watcher lifecycle"""

    @pytest.mark.asyncio
    async def test_ingest_existing(self, collector, temp_dir):
        (temp_dir / "b.txt").write_text("b")
        (temp_dir / "a.txt").write_text("a")
        (temp_dir / ".hidden").write_text("h")
        (temp_dir / "nested").mkdir()

        await DropFolderWatcher(temp_dir, collector).ingest_existing()

        assert collector.names == ["a.txt", "b.txt"]

    @pytest.mark.asyncio
    async def test_start_and_stop(self, collector, temp_dir):
        watcher = DropFolderWatcher(temp_dir / "outbox", collector, quiet_period=QUIET)

        watcher.start()
        try:
            assert watcher.running
            (temp_dir / "outbox" / "dropped.txt").write_text("dropped")
            await wait_for(lambda: "dropped.txt" in collector.names)
        finally:
            watcher.stop()

        assert not watcher.running

    @pytest.mark.asyncio
    async def test_dropped_files_reach_session(self, session, temp_dir):
        """Repeated events for one file leave a single ready record"""
        watcher = DropFolderWatcher(temp_dir, session.add_files)
        handler = make_handler(session.add_files)

        path = temp_dir / "photo.jpg"
        path.write_bytes(b"\xff\xd8" * 100)
        await watcher.ingest_existing()
        handler.on_modified(FileModifiedEvent(str(path)))
        handler.on_modified(FileModifiedEvent(str(path)))
        await asyncio.sleep(QUIET * 4)

        assert [r.name for r in session.ready] == ["photo.jpg"]
        assert session.ready[0].media_type == "image/jpeg"

    @pytest.mark.asyncio
    async def test_growing_file_round_trips(self, connected_session, clock, temp_dir):
        """Events fired while a file is being written still yield one downloadable record"""
        handler = make_handler(connected_session.add_files)
        path = temp_dir / "big.bin"
        path.write_bytes(b"")
        handler.on_created(FileCreatedEvent(str(path)))
        path.write_bytes(b"\x02" * 4096)
        handler.on_modified(FileModifiedEvent(str(path)))

        await wait_for(lambda: connected_session.ready)
        await asyncio.sleep(QUIET * 2)
        assert [(r.name, r.size) for r in connected_session.ready] == [("big.bin", 4096)]

        connected_session.send()
        clock.advance(5)
        link = connected_session.download(connected_session.received[0].id)
        assert connected_session.links.resolve(link.url).data == b"\x02" * 4096
