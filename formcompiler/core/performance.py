"""
Performance bookkeeping for compilation and validation.

The monitor accumulates timings and cache efficiency until it is reset
explicitly by its owner, and can run an on-demand benchmark against a
given form.
"""

import logging
import threading
import time
from collections.abc import Callable
from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel

from formcompiler.core.builder import CompiledSchema, text_formats
from formcompiler.core.schema import FieldType, FormField, FormMetadata
from formcompiler.core.utils import memory_usage_mb

logger = logging.getLogger(__name__)

DEFAULT_BENCHMARK_ITERATIONS = 100


class PerformanceSnapshot(BaseModel):
    """Accumulated metrics. Times are in milliseconds, memory in MB."""

    compilation_time: float = 0.0
    validation_time: float = 0.0
    total_compilations: int = 0
    total_validations: int = 0
    cache_hit_rate: float = 0.0
    cache_size: int = 0
    memory_usage: float = 0.0
    average_compilation_time: float = 0.0
    average_validation_time: float = 0.0


class TimingStats(BaseModel):
    avg: float
    min: float
    max: float


class MemoryStats(BaseModel):
    before: float
    after: float
    delta: float


class BenchmarkResult(BaseModel):
    """Outcome of PerformanceMonitor.run_benchmark."""

    iterations: int
    compilation: TimingStats
    validation: TimingStats
    memory: MemoryStats


class PerformanceMonitor:
    """Thread-safe accumulator of compilation and validation timings.

    Args:
        cache_size: Optional callable reporting the current cache size,
            included in snapshots.
    """

    def __init__(self, cache_size: Callable[[], int] | None = None):
        self._cache_size = cache_size
        self._lock = threading.Lock()
        self._reset_counters()

    def record_compilation(self, duration_ms: float, *, cache_hit: bool = False) -> None:
        """Record one compile call and whether it was served from cache."""
        with self._lock:
            self._compilation_time += max(duration_ms, 0.0)
            self._total_compilations += 1
            if cache_hit:
                self._cache_hits += 1

    def record_validation(self, duration_ms: float) -> None:
        """Record one validate call."""
        with self._lock:
            self._validation_time += max(duration_ms, 0.0)
            self._total_validations += 1

    def get_metrics(self) -> PerformanceSnapshot:
        """Return a copy of the accumulated metrics."""
        cache_size = self._cache_size() if self._cache_size else 0
        memory_usage = memory_usage_mb()

        with self._lock:
            compilations = self._total_compilations
            validations = self._total_validations
            snapshot = PerformanceSnapshot(
                compilation_time=self._compilation_time,
                validation_time=self._validation_time,
                total_compilations=compilations,
                total_validations=validations,
                cache_size=cache_size,
                memory_usage=memory_usage,
                cache_hit_rate=(self._cache_hits / compilations) * 100 if compilations else 0.0,
                average_compilation_time=self._compilation_time / compilations if compilations else 0.0,
                average_validation_time=self._validation_time / validations if validations else 0.0,
            )

        return snapshot

    def reset_metrics(self) -> None:
        """Zero every counter."""
        with self._lock:
            self._reset_counters()
        logger.info("Performance metrics reset")

    def run_benchmark(
        self,
        compile_fn: Callable[[FormMetadata], tuple[CompiledSchema, bool]],
        metadata: FormMetadata,
        iterations: int = DEFAULT_BENCHMARK_ITERATIONS,
    ) -> BenchmarkResult:
        """Time repeated compilation and validation of a form.

        Compilation goes through ``compile_fn`` as-is, so cache effects are
        part of the measurement. Every sample is recorded in the metrics,
        together with whether the cache served it.

        Args:
            compile_fn: The compile pipeline to measure, returning the schema
                and whether it was a cache hit.
            metadata: The form to compile.
            iterations: Number of compile and validate rounds.

        Returns:
            Timing statistics and memory before / after.

        Raises:
            ValueError: If iterations is less than 1.
        """
        if iterations < 1:
            raise ValueError(f"iterations must be at least 1, got {iterations}")

        memory_before = memory_usage_mb()

        compilation_times: list[float] = []
        schema = None
        for _ in range(iterations):
            start = time.perf_counter()
            schema, cache_hit = compile_fn(metadata)
            elapsed = (time.perf_counter() - start) * 1000
            compilation_times.append(elapsed)
            self.record_compilation(elapsed, cache_hit=cache_hit)

        payload = build_sample_payload(metadata)
        validation_times: list[float] = []
        for _ in range(iterations):
            start = time.perf_counter()
            schema.validate(payload)
            elapsed = (time.perf_counter() - start) * 1000
            validation_times.append(elapsed)
            self.record_validation(elapsed)

        memory_after = memory_usage_mb()
        logger.info(
            "Benchmark finished: %d iterations, compile avg %.3f ms, validate avg %.3f ms",
            iterations,
            sum(compilation_times) / iterations,
            sum(validation_times) / iterations,
        )

        return BenchmarkResult(
            iterations=iterations,
            compilation=_timing_stats(compilation_times),
            validation=_timing_stats(validation_times),
            memory=MemoryStats(
                before=memory_before,
                after=memory_after,
                delta=round(memory_after - memory_before, 2),
            ),
        )

    def _reset_counters(self) -> None:
        self._compilation_time = 0.0
        self._validation_time = 0.0
        self._total_compilations = 0
        self._total_validations = 0
        self._cache_hits = 0


def build_sample_payload(metadata: FormMetadata) -> dict[str, Any]:
    """Build a representative, valid submission for the form."""
    return {field.name: _sample_value(field) for field in metadata.fields}


def _sample_value(field: FormField) -> Any:
    if field.is_multi_value:
        return field.option_values[:1]

    match field.field_type:
        case FieldType.TEXT | FieldType.TEXTAREA:
            formats = text_formats(field)
            if "email" in formats:
                return "user@example.com"
            if "url" in formats:
                return "https://example.com"
            if "phone" in formats:
                return "+1 555 0100"
            return "test value"
        case FieldType.NUMBER:
            return 42
        case FieldType.DATE:
            return datetime.now(timezone.utc).isoformat()
        case FieldType.CHECKBOX:
            return True
        case FieldType.SELECT:
            return field.option_values[0]


def _timing_stats(samples: list[float]) -> TimingStats:
    return TimingStats(avg=sum(samples) / len(samples), min=min(samples), max=max(samples))
