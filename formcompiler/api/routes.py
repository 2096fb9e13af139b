"""
FastAPI routes for the schema compiler.

Endpoints:
- POST /compile       — validate and compile form metadata
- POST /validate      — validate a submission against form metadata
- POST /visibility    — compute field visibility for current values
- POST /json-schema   — export the submission JSON Schema
- GET  /cache/stats   — compilation cache statistics
- POST /cache/clear   — drop every cached schema
- GET  /metrics       — accumulated performance metrics
- POST /metrics/reset — reset performance metrics
- POST /benchmark     — run a compile / validate benchmark
- GET  /health        — health check
"""

import logging
from typing import Any

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, Field

from formcompiler.core.builder import ValidationResult
from formcompiler.core.cache import CacheStats
from formcompiler.core.compiler import SchemaCompiler
from formcompiler.core.errors import CircularReferenceError, MetadataError
from formcompiler.core.performance import BenchmarkResult, PerformanceSnapshot
from formcompiler.core.schema import FormField, FormMetadata

logger = logging.getLogger(__name__)

router = APIRouter()

# Injected by the app factory
_compiler: SchemaCompiler | None = None


def configure_routes(compiler: SchemaCompiler) -> None:
    """Inject the compiler instance into the routes module.

    Called by the app factory during startup.
    """
    global _compiler
    _compiler = compiler


# --- Request / Response Models ---


class CompileRequest(BaseModel):
    metadata: dict[str, Any]


class CompileResponse(BaseModel):
    metadata_hash: str
    field_names: list[str]


class ValidateRequest(BaseModel):
    metadata: dict[str, Any]
    data: dict[str, Any]


class VisibilityRequest(BaseModel):
    """Either the full metadata or only its fields may be sent."""

    fields: list[FormField] | None = None
    metadata: FormMetadata | None = None
    values: dict[str, Any] = Field(default_factory=dict)


class VisibilityResponse(BaseModel):
    visibility: dict[str, bool]


class JsonSchemaRequest(BaseModel):
    metadata: dict[str, Any]
    title: str | None = None
    strict: bool = False


class BenchmarkRequest(BaseModel):
    metadata: dict[str, Any]
    iterations: int | None = Field(default=None, ge=1, le=100_000)


# --- Endpoints ---


@router.post("/compile", response_model=CompileResponse)
async def compile_metadata(request: CompileRequest):
    """Validate and compile form metadata (result is cached)."""
    compiler = _get_compiler()
    schema = _run_with_metadata_errors(compiler.compile, request.metadata)
    return CompileResponse(metadata_hash=schema.metadata_hash, field_names=schema.field_names)


@router.post("/validate", response_model=ValidationResult)
async def validate_submission(request: ValidateRequest):
    """Validate a submission. Field errors come back with success=false."""
    compiler = _get_compiler()
    return _run_with_metadata_errors(compiler.validate, request.data, request.metadata)


@router.post("/visibility", response_model=VisibilityResponse)
async def visibility(request: VisibilityRequest):
    """Compute which fields are visible for the current values."""
    compiler = _get_compiler()

    if request.metadata is not None:
        fields = request.metadata.fields
    elif request.fields is not None:
        fields = request.fields
    else:
        raise HTTPException(status_code=400, detail="Either 'fields' or 'metadata' is required")

    return VisibilityResponse(visibility=compiler.compute_visibility(fields, request.values))


@router.post("/json-schema")
async def json_schema(request: JsonSchemaRequest) -> dict[str, Any]:
    """Export the JSON Schema describing valid submissions."""
    compiler = _get_compiler()
    return _run_with_metadata_errors(
        compiler.to_json_schema, request.metadata, title=request.title, strict=request.strict,
    )


@router.get("/cache/stats", response_model=CacheStats)
async def cache_stats():
    return _get_compiler().cache_stats()


@router.post("/cache/clear")
async def clear_cache():
    _get_compiler().clear_cache()
    logger.info("Compilation cache cleared via API")
    return {"status": "cleared"}


@router.get("/metrics", response_model=PerformanceSnapshot)
async def metrics():
    return _get_compiler().get_metrics()


@router.post("/metrics/reset")
async def reset_metrics():
    _get_compiler().reset_metrics()
    return {"status": "reset"}


@router.post("/benchmark", response_model=BenchmarkResult)
async def benchmark(request: BenchmarkRequest):
    """Run a benchmark. Samples are added to the shared metrics."""
    compiler = _get_compiler()
    return _run_with_metadata_errors(compiler.run_benchmark, request.metadata, request.iterations)


@router.get("/health")
async def health():
    """Health check endpoint."""
    compiler = _get_compiler()
    return {"status": "ok", "cached_schemas": len(compiler.cache)}


# --- Helpers ---


def _get_compiler() -> SchemaCompiler:
    if _compiler is None:
        raise HTTPException(status_code=500, detail="Server not properly configured")
    return _compiler


def _run_with_metadata_errors(func, *args, **kwargs):
    """Call func, mapping metadata problems to HTTP 422."""
    try:
        return func(*args, **kwargs)
    except CircularReferenceError as e:
        raise HTTPException(
            status_code=422,
            detail={
                "message": "Circular condition reference",
                "cycle": e.cycle,
                "issues": [issue.model_dump() for issue in e.issues],
            },
        )
    except MetadataError as e:
        raise HTTPException(
            status_code=422,
            detail={
                "message": "Invalid form metadata",
                "issues": [issue.model_dump() for issue in e.issues],
            },
        )
