"""Progress sources for batch transfers"""

import random
from abc import ABC, abstractmethod
from typing import Iterable, List, Optional
import logging

from ..store import Batch

logger = logging.getLogger(__name__)


class ProgressSource(ABC):
    """
    Supplies the percentage points a batch advances per tick
    start() is called once per batch before the first tick
    """

    def start(self, batch: Batch) -> None:
        pass

    @abstractmethod
    def next_increment(self) -> float:
        pass


class RandomProgressSource(ProgressSource):
    """Random increments between low and high percent"""

    def __init__(self, low: float = 5.0, high: float = 20.0,
                 rng: Optional[random.Random] = None):
        if not 0 < low <= high:
            raise ValueError("Increment range must satisfy 0 < low <= high")
        self.low = low
        self.high = high
        self.rng = rng or random.Random()

    def next_increment(self) -> float:
        return self.rng.uniform(self.low, self.high)


class FixedProgressSource(ProgressSource):
    """Replays a fixed sequence; the last value repeats once exhausted"""

    def __init__(self, increments: Iterable[float]):
        self.increments: List[float] = list(increments)
        if not self.increments:
            raise ValueError("At least one increment is required")
        if any(i <= 0 for i in self.increments):
            raise ValueError("Increments must be positive")
        self._position = 0

    def start(self, batch: Batch) -> None:
        self._position = 0

    def next_increment(self) -> float:
        value = self.increments[min(self._position, len(self.increments) - 1)]
        self._position += 1
        return value


class ChunkedProgressSource(ProgressSource):
    """
    Reports progress as bytes delivered over the batch total
    Each tick delivers one chunk of chunk_size bytes
    """

    def __init__(self, chunk_size: int = 64 * 1024):
        if chunk_size < 1:
            raise ValueError("chunk_size must be positive")
        self.chunk_size = chunk_size
        self.total_bytes = 0
        self.delivered = 0

    def start(self, batch: Batch) -> None:
        self.total_bytes = sum(len(e.content or b"") for e in batch.entries)
        self.delivered = 0
        logger.debug(f"Chunked transfer of {self.total_bytes} bytes in {self.chunk_count} chunks")

    @property
    def chunk_count(self) -> int:
        return max(1, -(-self.total_bytes // self.chunk_size))

    def next_increment(self) -> float:
        if self.total_bytes == 0:
            return 100.0

        before = self.delivered
        self.delivered = min(self.total_bytes, self.delivered + self.chunk_size)
        if self.delivered == self.total_bytes:
            # final chunk
            return 100.0
        return (self.delivered - before) * 100.0 / self.total_bytes
