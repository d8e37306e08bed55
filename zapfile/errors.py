"""Exception hierarchy for ZapFile"""


class ZapFileError(Exception):
    """Base exception for all ZapFile errors"""
    pass


class ConfigError(ZapFileError):
    """Raised when configuration is missing or invalid"""
    pass


class ReadError(ZapFileError):
    """Raised when a file source cannot be read"""
    pass


class ChecksumError(ZapFileError):
    """Raised when the hashing primitive is unavailable or fails"""
    pass


class IntegrityError(ZapFileError):
    """Base class for download-time verification failures"""
    pass


class ContentUnavailable(IntegrityError):
    """Raised when a record has no bytes to release"""
    pass


class UnverifiedContent(IntegrityError):
    """Raised when a record only carries a fallback fingerprint"""
    pass


class IntegrityMismatch(IntegrityError):
    """
    Raised when the recomputed fingerprint differs from the stored one
    """

    def __init__(self, expected: str, actual: str):
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"File integrity check failed. Expected: {expected[:8]}..., "
            f"Got: {actual[:8]}..."
        )


class SizeMismatch(IntegrityError):
    """Raised when the reconstructed size differs from the recorded size"""

    def __init__(self, expected: int, actual: int):
        self.expected = expected
        self.actual = actual
        super().__init__(f"File size mismatch. Expected: {expected}, Got: {actual}")


class LinkExpired(ZapFileError):
    """Raised when a download link was revoked or never existed"""
    pass


class TransferStateError(ZapFileError):
    """Raised on an illegal transfer state transition"""
    pass
