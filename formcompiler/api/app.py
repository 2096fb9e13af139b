"""
FastAPI application factory for the form schema compiler.

Creates the SchemaCompiler from environment configuration and mounts the
routes under /api.

Run with:
    uvicorn formcompiler.api.app:app --reload
"""

import logging
import os

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from formcompiler.api.routes import configure_routes, router
from formcompiler.core.compiler import SchemaCompiler
from formcompiler.core.config import CompilerOptions

# Load environment variables from .env
load_dotenv()

# Logging
logging.basicConfig(
    level=getattr(logging, os.getenv("LOG_LEVEL", "INFO").upper(), logging.INFO),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


def create_app(compiler: SchemaCompiler | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        compiler: Optional pre-built compiler (tests inject their own).
    """
    application = FastAPI(
        title="Form Schema Compiler",
        description="Compiles form metadata into validators and visibility maps",
        version="0.1.0",
    )

    allowed_origins = os.getenv("CORS_ALLOWED_ORIGINS", "*").split(",")
    application.add_middleware(
        CORSMiddleware,
        allow_origins=allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    if compiler is None:
        options = CompilerOptions.from_env()
        compiler = SchemaCompiler(options)
        logger.info(
            "Schema compiler ready: cache=%s (max %d), locale=%s",
            "on" if options.enable_cache else "off",
            options.cache_max_size,
            options.error_locale,
        )

    configure_routes(compiler)
    application.include_router(router, prefix="/api")

    return application


# Create the app instance (used by uvicorn)
app = create_app()
