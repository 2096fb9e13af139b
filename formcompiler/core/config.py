"""
Compiler configuration.

Options can be passed explicitly or read from environment variables
(``FORMCOMPILER_*``). The app factory loads ``.env`` before calling
``CompilerOptions.from_env``.
"""

import os

from pydantic import BaseModel, Field

from formcompiler.core.cache import DEFAULT_CACHE_MAX_SIZE
from formcompiler.core.messages import DEFAULT_LOCALE
from formcompiler.core.performance import DEFAULT_BENCHMARK_ITERATIONS


def _is_truthy(value: str | None, default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return int(raw)


class CompilerOptions(BaseModel):
    """Settings for a SchemaCompiler instance."""

    enable_cache: bool = Field(
        default=True,
        description="Serve repeated compilations from the LRU cache",
    )
    cache_max_size: int = Field(
        default=DEFAULT_CACHE_MAX_SIZE,
        ge=1,
        description="Maximum number of compiled schemas kept in the cache",
    )
    validate_metadata: bool = Field(
        default=True,
        description="Run the metadata validator (including cycle detection) before building",
    )
    error_locale: str = Field(
        default=DEFAULT_LOCALE,
        description="Locale of field-level error messages",
    )
    benchmark_iterations: int = Field(
        default=DEFAULT_BENCHMARK_ITERATIONS,
        ge=1,
        description="Default iteration count for run_benchmark",
    )

    @classmethod
    def from_env(cls) -> "CompilerOptions":
        """Build options from FORMCOMPILER_* environment variables."""
        return cls(
            enable_cache=_is_truthy(os.getenv("FORMCOMPILER_ENABLE_CACHE"), default=True),
            cache_max_size=_int_env("FORMCOMPILER_CACHE_MAX_SIZE", DEFAULT_CACHE_MAX_SIZE),
            validate_metadata=_is_truthy(os.getenv("FORMCOMPILER_VALIDATE_METADATA"), default=True),
            error_locale=os.getenv("FORMCOMPILER_ERROR_LOCALE", DEFAULT_LOCALE),
            benchmark_iterations=_int_env(
                "FORMCOMPILER_BENCHMARK_ITERATIONS", DEFAULT_BENCHMARK_ITERATIONS,
            ),
        )
