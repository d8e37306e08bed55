from .checksum import compute_fingerprint, Fingerprint, Fingerprinter, FALLBACK_PREFIX
from .links import Blob, DownloadLink, LinkRegistry
from .verifier import IntegrityVerifier

__all__ = [
    'compute_fingerprint',
    'Fingerprint',
    'Fingerprinter',
    'FALLBACK_PREFIX',
    'Blob',
    'DownloadLink',
    'LinkRegistry',
    'IntegrityVerifier'
]
