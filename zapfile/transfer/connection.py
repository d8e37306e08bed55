"""Simulated peer connection"""

from enum import Enum
from typing import Callable, Optional
import logging

from ..store import ConnectionChanged, FileRecordStore
from .clock import Clock, TimerHandle

logger = logging.getLogger(__name__)


class ConnectionStatus(str, Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"


class SimulatedConnection:
    """
    Stand-in for a peer transport: connecting flips a flag after a delay
    No data moves through it and the session id is not authenticated
    """

    def __init__(self, store: FileRecordStore, clock: Clock, connect_delay: float = 1.5,
                 on_disconnect: Optional[Callable[[], None]] = None):
        self.store = store
        self.clock = clock
        self.connect_delay = connect_delay
        self.on_disconnect = on_disconnect
        self.session_id: Optional[str] = None
        self._pending: Optional[TimerHandle] = None

    @property
    def status(self) -> ConnectionStatus:
        if self.store.connected:
            return ConnectionStatus.CONNECTED
        if self._pending is not None:
            return ConnectionStatus.CONNECTING
        return ConnectionStatus.DISCONNECTED

    @property
    def peers(self) -> int:
        return 1 if self.store.connected else 0

    def connect(self, session_id: str) -> bool:
        """Begin connecting to a session; blank ids are ignored"""
        session_id = (session_id or "").strip()
        if not session_id:
            return False
        if self.status is not ConnectionStatus.DISCONNECTED:
            return False

        self.session_id = session_id
        logger.info(f"Connecting to session {session_id}")

        if self.connect_delay <= 0:
            self._established()
        else:
            self._pending = self.clock.call_later(self.connect_delay, self._established)
        return True

    def _established(self):
        self._pending = None
        self.store.dispatch(ConnectionChanged(True))
        logger.info(f"Connected to session {self.session_id}")

    def disconnect(self):
        if self._pending is not None:
            self._pending.cancel()
            self._pending = None
        if not self.store.connected:
            return

        if self.on_disconnect is not None:
            self.on_disconnect()
        self.store.dispatch(ConnectionChanged(False))
        logger.info(f"Disconnected from session {self.session_id}")
