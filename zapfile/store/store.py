"""File record store"""

from typing import Callable, List, Optional, Tuple
import logging

from .records import FileRecord, TransferEntry
from .state import AppState, Batch, reduce

logger = logging.getLogger(__name__)

Listener = Callable[[object, AppState], None]


class FileRecordStore:
    """
    Owns the application state
    All mutation goes through dispatch(); listeners see every applied event
    """

    def __init__(self, state: Optional[AppState] = None):
        self._state = state or AppState()
        self._listeners: List[Listener] = []

    @property
    def state(self) -> AppState:
        return self._state

    def dispatch(self, event) -> AppState:
        """Apply an event and notify listeners"""
        self._state = reduce(self._state, event)
        logger.debug(f"Applied {type(event).__name__}")

        for listener in list(self._listeners):
            listener(event, self._state)

        return self._state

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a listener; returns a function that removes it"""
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    @property
    def ready(self) -> Tuple[FileRecord, ...]:
        return self._state.ready

    @property
    def received(self) -> Tuple[TransferEntry, ...]:
        return self._state.received

    @property
    def batch(self) -> Optional[Batch]:
        return self._state.batch

    @property
    def progress(self) -> float:
        return self._state.progress

    @property
    def connected(self) -> bool:
        return self._state.connected

    def has_ready(self, name: str, size: int) -> bool:
        """Check whether a file with this name and size awaits sending"""
        return any(r.name == name and r.size == size for r in self._state.ready)

    def get_received(self, entry_id: str) -> Optional[TransferEntry]:
        for entry in self._state.received:
            if entry.id == entry_id:
                return entry
        return None

    def get_statistics(self) -> dict:
        """Summary of the current state"""
        batch = self._state.batch
        return {
            'ready_count': len(self._state.ready),
            'ready_bytes': sum(r.size for r in self._state.ready),
            'received_count': len(self._state.received),
            'received_bytes': sum(e.size for e in self._state.received),
            'batch_status': batch.status.value if batch else None,
            'progress': self._state.progress,
            'connected': self._state.connected
        }
