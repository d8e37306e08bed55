"""Test the ingestion pipeline"""

import asyncio
import hashlib

import pytest

from zapfile.audit import LogAction
from zapfile.errors import ReadError
from zapfile.ingest import BytesSource, FileSource, IngestionPipeline, PathSource
from zapfile.integrity import Fingerprinter
from zapfile.store import FileRecordStore


class BrokenSource(FileSource):
    """Source whose read always fails"""

    def __init__(self, name="broken.bin", size=5):
        self.name = name
        self.size = size
        self.media_type = ""
        self.last_modified = 0.0

    async def read(self) -> bytes:
        raise ReadError("FileReader error")


class SlowSource(BytesSource):
    """Source that yields to the loop before returning"""

    async def read(self) -> bytes:
        await asyncio.sleep(0.01)
        return await super().read()


@pytest.fixture
def store():
    return FileRecordStore()


@pytest.fixture
def pipeline(store, audit):
    return IngestionPipeline(store, Fingerprinter(), audit)


class TestIngestionPipeline:
    """Test reading, fingerprinting and deduplication"""

    @pytest.mark.asyncio
    async def test_ingest_builds_record(self, pipeline, store, hello_source):
        records = await pipeline.ingest([hello_source])

        assert len(records) == 1
        record = records[0]
        assert record.name == "hello.txt"
        assert record.size == 10
        assert record.content == b"hello zap!"
        assert record.checksum == hashlib.sha256(b"hello zap!").hexdigest()
        assert record.verified
        assert record.id.startswith("file-")
        assert store.ready == (record,)

    @pytest.mark.asyncio
    async def test_default_media_type(self, pipeline):
        records = await pipeline.ingest([BytesSource("blob", b"\x00\x01")])
        assert records[0].media_type == "application/octet-stream"

    @pytest.mark.asyncio
    async def test_unique_ids(self, pipeline):
        records = await pipeline.ingest([BytesSource(f"f{i}", b"x") for i in range(20)])
        assert len({r.id for r in records}) == 20

    @pytest.mark.asyncio
    async def test_ready_set_grows_by_append(self, pipeline, store):
        await pipeline.ingest([BytesSource("a", b"1")])
        await pipeline.ingest([BytesSource("b", b"2")])
        assert [r.name for r in store.ready] == ["a", "b"]

    @pytest.mark.asyncio
    async def test_duplicate_against_ready_set(self, pipeline, store):
        await pipeline.ingest([BytesSource("same.txt", b"12345")])
        added = await pipeline.ingest([BytesSource("same.txt", b"54321")])

        assert added == []
        assert len(store.ready) == 1

    @pytest.mark.asyncio
    async def test_duplicate_within_one_call(self, pipeline, store):
        await pipeline.ingest([BytesSource("dup", b"abc"), BytesSource("dup", b"abc")])
        assert len(store.ready) == 1

    @pytest.mark.asyncio
    async def test_rapid_succession_deduplicated(self, pipeline, store):
        """Two overlapping ingest calls for the same file give one record"""
        first = SlowSource("photo.jpg", b"\xff" * 64)
        second = SlowSource("photo.jpg", b"\xff" * 64)

        await asyncio.gather(pipeline.ingest([first]), pipeline.ingest([second]))

        assert len(store.ready) == 1

    @pytest.mark.asyncio
    async def test_same_name_different_size_kept(self, pipeline, store):
        await pipeline.ingest([BytesSource("a.txt", b"1"), BytesSource("a.txt", b"12")])
        assert len(store.ready) == 2

    @pytest.mark.asyncio
    async def test_read_error_skips_only_that_file(self, pipeline, store, audit):
        records = await pipeline.ingest([
            BytesSource("ok-1", b"1"),
            BrokenSource(),
            BytesSource("ok-2", b"2")
        ])

        assert [r.name for r in records] == ["ok-1", "ok-2"]
        assert [r.name for r in store.ready] == ["ok-1", "ok-2"]

        errors = [e for e in audit.entries() if e.action is LogAction.ERROR]
        assert len(errors) == 1
        assert errors[0].file_name == "broken.bin"
        assert "FileReader error" in errors[0].error

    @pytest.mark.asyncio
    async def test_failed_file_can_be_retried(self, pipeline, store):
        await pipeline.ingest([BrokenSource("retry.bin", 3)])
        await pipeline.ingest([BytesSource("retry.bin", b"abc")])
        assert len(store.ready) == 1

    @pytest.mark.asyncio
    async def test_audit_entries(self, pipeline, audit, hello_source):
        await pipeline.ingest([hello_source])

        entries = audit.entries()
        assert [e.action for e in entries] == [LogAction.UPLOAD, LogAction.UPLOAD]
        assert entries[0].checksum is not None
        assert entries[0].details.startswith("File processed successfully")
        assert entries[1].details == "Processing file: hello.txt (10 bytes)"

    @pytest.mark.asyncio
    async def test_fallback_checksum_marks_record_unverified(self, store, audit):
        pipeline = IngestionPipeline(store, Fingerprinter("NOPE"), audit)
        records = await pipeline.ingest([BytesSource("a", b"abc")])

        assert len(records) == 1
        assert not records[0].verified

    @pytest.mark.asyncio
    async def test_strict_checksum_excludes_file(self, store, audit):
        pipeline = IngestionPipeline(store, Fingerprinter("NOPE", strict=True), audit)
        records = await pipeline.ingest([BytesSource("a", b"abc")])

        assert records == []
        assert store.ready == ()
        assert audit.latest().action is LogAction.ERROR

    @pytest.mark.asyncio
    async def test_cancelled_ingest_releases_reservations(self, pipeline, store):
        task = asyncio.ensure_future(pipeline.ingest([SlowSource("c.bin", b"c")]))
        await asyncio.sleep(0)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        assert store.ready == ()
        await pipeline.ingest([BytesSource("c.bin", b"c")])
        assert len(store.ready) == 1


class TestSources:
    """Test file sources"""

    @pytest.mark.asyncio
    async def test_path_source(self, temp_dir):
        path = temp_dir / "notes.txt"
        path.write_bytes(b"some notes")

        source = PathSource(path)
        assert source.name == "notes.txt"
        assert source.size == 10
        assert source.media_type == "text/plain"
        assert await source.read() == b"some notes"

    def test_missing_path(self, temp_dir):
        with pytest.raises(ReadError):
            PathSource(temp_dir / "missing.bin")

    @pytest.mark.asyncio
    async def test_path_removed_before_read(self, temp_dir):
        path = temp_dir / "gone.bin"
        path.write_bytes(b"x")
        source = PathSource(path)
        path.unlink()

        with pytest.raises(ReadError):
            await source.read()

    @pytest.mark.asyncio
    async def test_bytes_source_copies_content(self):
        data = bytearray(b"mutable")
        source = BytesSource("m.bin", data)
        data[0] = ord("M")
        assert await source.read() == b"mutable"

    @pytest.mark.asyncio
    async def test_path_changed_after_stat(self, temp_dir):
        path = temp_dir / "a.bin"
        path.write_bytes(b"abc")
        source = PathSource(path)
        path.write_bytes(b"abcdef")

        with pytest.raises(ReadError, match="changed while reading"):
            await source.read()

    @pytest.mark.asyncio
    async def test_changed_file_excluded_then_retried(self, pipeline, store, audit, temp_dir):
        """A rewritten file is skipped and can be ingested again at its new size"""
        path = temp_dir / "a.bin"
        path.write_bytes(b"abc")
        stale = PathSource(path)
        path.write_bytes(b"abcdef")

        assert await pipeline.ingest([stale]) == []
        assert store.ready == ()
        assert audit.latest().action is LogAction.ERROR

        records = await pipeline.ingest([PathSource(path)])
        assert [(r.size, r.content) for r in records] == [(6, b"abcdef")]
