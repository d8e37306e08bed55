"""ZapFile - integrity-checked file hand-off between a sender and a receiver"""

__version__ = "1.0.0"

from .config import ZapConfig, load_config
from .errors import (
    ZapFileError, ConfigError, ReadError, ChecksumError, IntegrityError,
    ContentUnavailable, UnverifiedContent, IntegrityMismatch, SizeMismatch,
    LinkExpired, TransferStateError
)
from .session import ZapFileSession

__all__ = [
    'ZapConfig',
    'load_config',
    'ZapFileSession',
    'ZapFileError',
    'ConfigError',
    'ReadError',
    'ChecksumError',
    'IntegrityError',
    'ContentUnavailable',
    'UnverifiedContent',
    'IntegrityMismatch',
    'SizeMismatch',
    'LinkExpired',
    'TransferStateError'
]
