from .benchmark import Benchmarker, BenchmarkResult, DEFAULT_SIZES, format_size

__all__ = [
    'Benchmarker',
    'BenchmarkResult',
    'DEFAULT_SIZES',
    'format_size'
]
