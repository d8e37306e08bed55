import asyncio
import os
import time
import psutil
import json
from pathlib import Path
from typing import List, Dict, Sequence
from dataclasses import dataclass, asdict
import logging

from ..config import ZapConfig
from ..ingest import BytesSource
from ..integrity import compute_fingerprint
from ..session import ZapFileSession
from ..transfer import FixedProgressSource, VirtualClock

logger = logging.getLogger(__name__)

DEFAULT_SIZES = (1024, 1024 * 1024, 16 * 1024 * 1024)


@dataclass
class BenchmarkResult:
    """Single benchmark result"""
    algorithm: str
    file_size: int
    iterations: int
    avg_fingerprint_ms: float
    avg_ingest_ms: float
    avg_verify_ms: float
    throughput_mb_s: float
    cpu_usage_avg: float
    cpu_usage_max: float
    memory_mb_avg: float
    memory_mb_max: float
    timestamp: float


class Benchmarker:
    """
    Measures fingerprinting, ingestion and download verification
    Transfers run on a virtual clock so only processing time is measured
    """

    def __init__(self, output_dir: Path, config: ZapConfig = None):
        self.output_dir = Path(output_dir)
        self.output_dir.mkdir(parents=True, exist_ok=True)
        self.config = config or ZapConfig()
        self.results: List[BenchmarkResult] = []

        # Process for resource monitoring
        self.process = psutil.Process()

    async def test_size(self, file_size: int, iterations: int = 10) -> BenchmarkResult:
        """Benchmark the full pipeline for one file size"""
        if iterations < 1:
            raise ValueError("iterations must be at least 1")
        if file_size < 0:
            raise ValueError("file_size must not be negative")

        logger.info(f"Benchmarking {self.config.checksum_algorithm} with {file_size} byte files")

        fingerprint_times = []
        ingest_times = []
        verify_times = []
        cpu_usages = []
        memory_usages = []

        for i in range(iterations):
            content = os.urandom(file_size)
            session = ZapFileSession(
                self.config,
                clock=VirtualClock(),
                progress_source=FixedProgressSource([100])
            )

            cpu_before = self.process.cpu_percent()
            mem_before = self.process.memory_info().rss / 1024 / 1024

            start = time.perf_counter()
            compute_fingerprint(content, self.config.checksum_algorithm)
            fingerprint_times.append((time.perf_counter() - start) * 1000)

            start = time.perf_counter()
            await session.add_files([BytesSource(f"bench-{i}.bin", content)])
            ingest_times.append((time.perf_counter() - start) * 1000)

            session.connect()
            session.clock.advance(self.config.connect_delay)
            session.send()
            session.clock.advance(self.config.tick_interval)

            entry = session.received[0]
            start = time.perf_counter()
            session.verifier.verify(entry)
            verify_times.append((time.perf_counter() - start) * 1000)

            cpu_after = self.process.cpu_percent()
            mem_after = self.process.memory_info().rss / 1024 / 1024

            cpu_usages.append((cpu_before + cpu_after) / 2)
            memory_usages.append(mem_after - mem_before)

            # Small delay between iterations
            await asyncio.sleep(0.01)

        avg_fingerprint = sum(fingerprint_times) / len(fingerprint_times)
        result = BenchmarkResult(
            algorithm=self.config.checksum_algorithm,
            file_size=file_size,
            iterations=iterations,
            avg_fingerprint_ms=avg_fingerprint,
            avg_ingest_ms=sum(ingest_times) / len(ingest_times),
            avg_verify_ms=sum(verify_times) / len(verify_times),
            throughput_mb_s=(file_size / 1024 / 1024) / (avg_fingerprint / 1000) if avg_fingerprint else 0.0,
            cpu_usage_avg=sum(cpu_usages) / len(cpu_usages),
            cpu_usage_max=max(cpu_usages),
            memory_mb_avg=sum(memory_usages) / len(memory_usages),
            memory_mb_max=max(memory_usages),
            timestamp=time.time()
        )

        self.results.append(result)
        return result

    async def test_sizes(self, sizes: Sequence[int] = DEFAULT_SIZES, iterations: int = 10):
        """Benchmark each file size in turn"""
        for count, size in enumerate(sizes, 1):
            logger.info(f"Progress: {count}/{len(sizes)}")
            await self.test_size(size, iterations)

        logger.info(f"Completed {len(self.results)} benchmarks")

    def save_results(self):
        """Save benchmark results to JSON and CSV"""
        timestamp = int(time.time())

        json_file = self.output_dir / f"benchmark_{timestamp}.json"
        with open(json_file, 'w') as f:
            json.dump(
                [asdict(r) for r in self.results],
                f,
                indent=2
            )
        logger.info(f"Saved results to {json_file}")

        csv_file = self.output_dir / f"benchmark_{timestamp}.csv"
        with open(csv_file, 'w') as f:
            if self.results:
                fields = asdict(self.results[0]).keys()
                f.write(','.join(fields) + '\n')

                for result in self.results:
                    values = [str(v) for v in asdict(result).values()]
                    f.write(','.join(values) + '\n')

        logger.info(f"Saved CSV to {csv_file}")
        return json_file, csv_file

    def generate_report(self):
        """Generate timing and resource plots"""
        if not self.results:
            logger.warning("No results to generate report")
            return

        try:
            import matplotlib.pyplot as plt
            import pandas as pd

            df = pd.DataFrame([asdict(r) for r in self.results])
            df['size_label'] = df['file_size'].apply(format_size)

            fig, axes = plt.subplots(1, 3, figsize=(18, 6))
            fig.suptitle('ZapFile Pipeline Benchmarks', fontsize=16, fontweight='bold')

            # Stage timings
            ax = axes[0]
            df.plot(x='size_label', y=['avg_fingerprint_ms', 'avg_ingest_ms', 'avg_verify_ms'],
                    kind='bar', ax=ax)
            ax.set_title('Average Stage Time')
            ax.set_ylabel('Time (ms)')
            ax.legend(['Fingerprint', 'Ingest', 'Verify'])
            ax.tick_params(axis='x', rotation=0)

            # Throughput
            ax = axes[1]
            df.plot(x='size_label', y='throughput_mb_s', kind='bar', ax=ax, legend=False, color='green')
            ax.set_title('Fingerprint Throughput')
            ax.set_ylabel('MB/s')
            ax.tick_params(axis='x', rotation=0)

            # Memory usage
            ax = axes[2]
            df.plot(x='size_label', y=['memory_mb_avg', 'memory_mb_max'], kind='bar', ax=ax)
            ax.set_title('Memory Growth')
            ax.set_ylabel('Memory (MB)')
            ax.tick_params(axis='x', rotation=0)

            plt.tight_layout()

            timestamp = int(time.time())
            plot_file = self.output_dir / f"benchmark_plot_{timestamp}.png"
            plt.savefig(plot_file, dpi=150, bbox_inches='tight')
            logger.info(f"Saved plot to {plot_file}")

            plt.close()

        except ImportError:
            logger.warning("matplotlib/pandas not installed, skipping visualization")

    def summary(self) -> Dict[str, Dict]:
        """Key figures per file size"""
        return {
            format_size(r.file_size): {
                'fingerprint_ms': round(r.avg_fingerprint_ms, 3),
                'ingest_ms': round(r.avg_ingest_ms, 3),
                'verify_ms': round(r.avg_verify_ms, 3),
                'throughput_mb_s': round(r.throughput_mb_s, 1)
            }
            for r in self.results
        }


def format_size(size: int) -> str:
    """Human readable byte count, e.g. 1.5 KB"""
    if size == 0:
        return "0 Bytes"
    units = ["Bytes", "KB", "MB", "GB"]
    value = float(size)
    index = 0
    while value >= 1024 and index < len(units) - 1:
        value /= 1024
        index += 1
    return f"{round(value, 2):g} {units[index]}"
