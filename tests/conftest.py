"""Pytest configuration and fixtures"""

import pytest
import tempfile
import shutil
from pathlib import Path

from zapfile.audit import AuditLog
from zapfile.config import ZapConfig
from zapfile.ingest import BytesSource
from zapfile.session import ZapFileSession
from zapfile.transfer import FixedProgressSource, VirtualClock


@pytest.fixture
def temp_dir():
    """Create temporary directory for tests"""
    tmpdir = tempfile.mkdtemp()
    yield Path(tmpdir)
    shutil.rmtree(tmpdir, ignore_errors=True)


@pytest.fixture
def clock():
    return VirtualClock()


@pytest.fixture
def audit(clock):
    return AuditLog(now=clock.now)


@pytest.fixture
def config():
    return ZapConfig(
        tick_interval=0.3,
        settle_delay=2.0,
        link_ttl=1.0,
        connect_delay=1.5
    )


@pytest.fixture
def progress_source():
    """Four ticks of 30% each: 30, 60, 90, 100"""
    return FixedProgressSource([30])


@pytest.fixture
def session(config, clock, progress_source):
    return ZapFileSession(config, clock=clock, progress_source=progress_source)


@pytest.fixture
def hello_source():
    return BytesSource("hello.txt", b"hello zap!", media_type="text/plain")


@pytest.fixture
def connected_session(session):
    """Session whose simulated connection is already established"""
    session.connect()
    session.clock.advance(session.config.connect_delay)
    assert session.store.connected
    return session
