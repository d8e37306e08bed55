from .records import FileRecord, TransferEntry, FileStatus, generate_file_id
from .state import (
    AppState, Batch, reduce,
    RecordsIngested, ReadyCleared, ReceivedCleared, ConnectionChanged,
    BatchCreated, BatchStarted, ProgressAdvanced, BatchCompleted,
    BatchFailed, BatchSettled
)
from .store import FileRecordStore

__all__ = [
    'FileRecord',
    'TransferEntry',
    'FileStatus',
    'generate_file_id',
    'AppState',
    'Batch',
    'reduce',
    'RecordsIngested',
    'ReadyCleared',
    'ReceivedCleared',
    'ConnectionChanged',
    'BatchCreated',
    'BatchStarted',
    'ProgressAdvanced',
    'BatchCompleted',
    'BatchFailed',
    'BatchSettled',
    'FileRecordStore'
]
