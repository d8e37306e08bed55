"""Content fingerprinting"""

import secrets
from dataclasses import dataclass
import logging

from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes

from ..errors import ChecksumError

logger = logging.getLogger(__name__)

FALLBACK_PREFIX = "unverified-"


def _hash_algorithm(name: str) -> hashes.HashAlgorithm:
    algorithm_class = getattr(hashes, name, None) or getattr(hashes, name.upper(), None)
    if not (isinstance(algorithm_class, type)
            and issubclass(algorithm_class, hashes.HashAlgorithm)):
        raise ChecksumError(f"Hash algorithm not available: {name}")
    try:
        return algorithm_class()
    except TypeError as e:
        # variable-length digests (BLAKE2, SHAKE) need a digest size
        raise ChecksumError(f"Hash algorithm not usable: {name}") from e


def compute_fingerprint(content: bytes, algorithm: str = "SHA256") -> str:
    """Compute hex digest of a byte buffer"""
    try:
        digest = hashes.Hash(_hash_algorithm(algorithm))
        digest.update(bytes(content))
        return digest.finalize().hex()
    except UnsupportedAlgorithm as e:
        raise ChecksumError(f"Hash algorithm unsupported by backend: {algorithm}") from e


@dataclass(frozen=True)
class Fingerprint:
    """Digest plus whether it can be trusted for verification"""
    value: str
    verified: bool = True


class Fingerprinter:
    """
    Wraps compute_fingerprint with the degraded-mode policy
    Strict mode propagates ChecksumError; otherwise a flagged fallback is returned
    """

    def __init__(self, algorithm: str = "SHA256", strict: bool = False):
        self.algorithm = algorithm
        self.strict = strict

    def fingerprint(self, content: bytes) -> Fingerprint:
        try:
            return Fingerprint(compute_fingerprint(content, self.algorithm))
        except ChecksumError as e:
            if self.strict:
                raise
            logger.error(f"Checksum generation failed, record will be unverified: {e}")
            return Fingerprint(FALLBACK_PREFIX + secrets.token_hex(8), verified=False)

    def matches(self, content: bytes, expected: str) -> bool:
        return compute_fingerprint(content, self.algorithm) == expected
