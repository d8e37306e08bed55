"""Test the bounded audit log"""

import json
import logging

from zapfile.audit import AuditLog, LogAction


class TestAuditLog:
    """Test append, bound and ordering"""

    def test_append_stamps_time(self, audit, clock):
        entry = audit.append(LogAction.UPLOAD, "a.txt", 3, "text/plain", details="Processing")
        assert entry.timestamp == clock.now()
        assert entry.action is LogAction.UPLOAD
        assert audit.latest() is entry

    def test_newest_first(self, audit):
        audit.append(LogAction.UPLOAD, "first", 1, "")
        audit.append(LogAction.DOWNLOAD, "second", 2, "")
        names = [e.file_name for e in audit.entries()]
        assert names == ["second", "first"]

    def test_bounded_to_capacity(self):
        """More than 100 appends keep exactly the 100 newest"""
        audit = AuditLog()
        for i in range(150):
            audit.append(LogAction.TRANSFER, f"file-{i}", i, "")

        entries = audit.entries()
        assert len(entries) == 100
        assert entries[0].file_name == "file-149"
        assert entries[-1].file_name == "file-50"

    def test_custom_capacity(self):
        audit = AuditLog(capacity=3)
        for i in range(5):
            audit.append("upload", f"f{i}", 0, "")
        assert [e.file_name for e in audit] == ["f4", "f3", "f2"]

    def test_clear(self, audit):
        audit.append(LogAction.ERROR, "bad", 0, "", error="boom")
        audit.clear()
        assert len(audit) == 0
        assert audit.latest() is None

    def test_mirrored_to_logger(self, audit, caplog):
        with caplog.at_level(logging.INFO, logger="zapfile.audit.log"):
            audit.append(LogAction.UPLOAD, "a.txt", 3, "", details="Processing")
            audit.append(LogAction.ERROR, "b.txt", 4, "", error="broken")

        assert "[ZapFile UPLOAD] a.txt" in caplog.text
        assert any(r.levelno == logging.ERROR and "broken" in r.getMessage()
                   for r in caplog.records)

    def test_export(self, audit, temp_dir):
        audit.append(LogAction.DOWNLOAD, "a.txt", 3, "text/plain", checksum="ab" * 32)
        out = temp_dir / "log.json"
        audit.export(out)

        data = json.loads(out.read_text())
        assert data[0]['action'] == "download"
        assert data[0]['checksum'] == "ab" * 32
