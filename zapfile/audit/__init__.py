from .log import AuditLog, LogEntry, LogAction, DEFAULT_CAPACITY

__all__ = [
    'AuditLog',
    'LogEntry',
    'LogAction',
    'DEFAULT_CAPACITY'
]
