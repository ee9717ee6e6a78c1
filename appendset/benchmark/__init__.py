"""
Benchmarking module for set backends.

This module provides a Triton-inspired benchmarking framework for comparing
membership lookups, build time and resident memory across the in-memory,
SQLite and spilling set implementations.
"""

from .benchmark import (
    BenchmarkConfig,
    BenchmarkResult,
    BenchmarkRunner,
    MembershipBenchmarkHelper,
    create_membership_benchmark,
    current_rss_mb,
    perf_report,
)

__all__ = [
    "BenchmarkConfig",
    "BenchmarkResult",
    "BenchmarkRunner",
    "MembershipBenchmarkHelper",
    "create_membership_benchmark",
    "current_rss_mb",
    "perf_report",
]
