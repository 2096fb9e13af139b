"""
Schema compiler facade.

Wires the metadata validator, compilation cache, schema builder and
performance monitor together. Every collaborator is constructed per
instance (or injected), so callers own the lifecycle of the cache and the
metrics; nothing is shared at module level.
"""

import logging
import time
from collections.abc import Iterable, Mapping
from typing import Any

from pydantic import ValidationError

from formcompiler.core.builder import CompiledSchema, SchemaBuilder, ValidationResult
from formcompiler.core.cache import CacheStats, CompilationCache
from formcompiler.core.config import CompilerOptions
from formcompiler.core.errors import MetadataError, MetadataIssue
from formcompiler.core.json_schema import to_json_schema
from formcompiler.core.messages import resolve_locale
from formcompiler.core.metadata_validator import check_metadata
from formcompiler.core.performance import BenchmarkResult, PerformanceMonitor, PerformanceSnapshot
from formcompiler.core.schema import FormField, FormMetadata
from formcompiler.core.visibility import compute_visibility

logger = logging.getLogger(__name__)


class SchemaCompiler:
    """Compiles form metadata and validates submissions against it.

    Args:
        options: Compiler settings. Defaults to CompilerOptions().
        builder: Schema builder, shared with the default cache.
        cache: Compilation cache. Built from the options when omitted.
        monitor: Performance monitor. A fresh one when omitted.
    """

    def __init__(
        self,
        options: CompilerOptions | None = None,
        *,
        builder: SchemaBuilder | None = None,
        cache: CompilationCache | None = None,
        monitor: PerformanceMonitor | None = None,
    ):
        self.options = options or CompilerOptions()
        self.builder = builder or SchemaBuilder()
        self.cache = cache or CompilationCache(max_size=self.options.cache_max_size, builder=self.builder)
        self.monitor = monitor or PerformanceMonitor(cache_size=lambda: len(self.cache))
        self._locale = resolve_locale(self.options.error_locale)

    # -----------------------------------------------------------------
    # Compilation and validation
    # -----------------------------------------------------------------

    def compile(self, metadata: FormMetadata | Mapping[str, Any]) -> CompiledSchema:
        """Compile metadata into a CompiledSchema.

        Args:
            metadata: A FormMetadata or its JSON-like dict form.

        Returns:
            The compiled schema, possibly shared from the cache.

        Raises:
            MetadataError: If the metadata is malformed or invalid.
            CircularReferenceError: If field conditions form a cycle.
        """
        start = time.perf_counter()
        cache_hit = False
        try:
            schema, cache_hit = self._compile(parse_metadata(metadata))
            return schema
        finally:
            self.monitor.record_compilation(_elapsed_ms(start), cache_hit=cache_hit)

    def validate(
        self,
        data: Mapping[str, Any],
        metadata: FormMetadata | Mapping[str, Any],
    ) -> ValidationResult:
        """Validate a submission against the metadata.

        Data problems are returned in the result. Metadata problems raise,
        as they do for ``compile``.
        """
        schema = self.compile(metadata)

        start = time.perf_counter()
        result = schema.validate(data, locale=self._locale)
        self.monitor.record_validation(_elapsed_ms(start))

        if not result.success:
            logger.debug(
                "Submission rejected for %s: %d field error(s)",
                schema.metadata_hash[:12],
                len(result.errors),
            )
        return result

    def compute_visibility(
        self,
        fields: FormMetadata | Iterable[FormField],
        values: Mapping[str, Any],
    ) -> dict[str, bool]:
        """Field ID to visibility for the current values. Never cached."""
        if isinstance(fields, FormMetadata):
            fields = fields.fields
        return compute_visibility(fields, values)

    def to_json_schema(self, metadata: FormMetadata | Mapping[str, Any], **kwargs: Any) -> dict[str, Any]:
        """JSON Schema of the submission payload accepted by the metadata."""
        parsed = parse_metadata(metadata)
        if self.options.validate_metadata:
            check_metadata(parsed)
        return to_json_schema(parsed, **kwargs)

    # -----------------------------------------------------------------
    # Management surface
    # -----------------------------------------------------------------

    def clear_cache(self) -> None:
        self.cache.clear()

    def cache_stats(self) -> CacheStats:
        return self.cache.stats()

    def get_metrics(self) -> PerformanceSnapshot:
        return self.monitor.get_metrics()

    def reset_metrics(self) -> None:
        self.monitor.reset_metrics()

    def run_benchmark(
        self,
        metadata: FormMetadata | Mapping[str, Any],
        iterations: int | None = None,
    ) -> BenchmarkResult:
        """Benchmark compile and validate for the metadata.

        Uses the regular pipeline (metadata checks and cache included); the
        samples are recorded in the shared metrics.
        """
        parsed = parse_metadata(metadata)
        return self.monitor.run_benchmark(
            self._compile,
            parsed,
            iterations or self.options.benchmark_iterations,
        )

    def set_error_locale(self, locale: str) -> None:
        """Switch the locale of field error messages."""
        self._locale = resolve_locale(locale)

    @property
    def error_locale(self) -> str:
        return self._locale

    # -----------------------------------------------------------------
    # Internal helpers
    # -----------------------------------------------------------------

    def _compile(self, metadata: FormMetadata) -> tuple[CompiledSchema, bool]:
        if self.options.validate_metadata:
            try:
                check_metadata(metadata)
            except MetadataError as e:
                logger.warning("Metadata v%s rejected: %s", metadata.version, e)
                raise

        if not self.options.enable_cache:
            return self.builder.build(metadata), False

        schema, cache_hit = self.cache.lookup(metadata)
        if not cache_hit:
            logger.info(
                "Compiled schema %s (version %s, %d fields)",
                schema.metadata_hash[:12],
                metadata.version,
                len(metadata.fields),
            )
        return schema, cache_hit


def parse_metadata(metadata: FormMetadata | Mapping[str, Any]) -> FormMetadata:
    """Parse JSON-like metadata, turning parse failures into MetadataError."""
    if isinstance(metadata, FormMetadata):
        return metadata

    try:
        return FormMetadata.model_validate(metadata)
    except ValidationError as e:
        raise MetadataError([
            MetadataIssue(
                field=".".join(str(part) for part in error["loc"]) or "metadata",
                code="MALFORMED",
                message=error["msg"],
            )
            for error in e.errors()
        ])


def _elapsed_ms(start: float) -> float:
    return (time.perf_counter() - start) * 1000
