"""
linedraw Service
================

FastAPI entry point exposing the line drawing pipeline over HTTP.

Endpoints:
    GET  /          - Service information
    GET  /health    - Liveness probe (is process alive?)
    GET  /options   - Default line drawing options
    POST /generate  - Raw image body in, PNG line drawing out

Option overrides for /generate are passed as query parameters using the
Options field names, e.g. ``POST /generate?tau=0.9&etf_iterations=3``.
"""

import asyncio
import logging
import os
import time
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, Response

from linedraw import __version__
from linedraw.config import settings, setup_logging
from linedraw.imaging.io import ImageDecodeError, decode_luminance, encode_image
from linedraw.lines.drawing import CoherentLineDrawing
from linedraw.models.options import Options, OptionsValidationError


logger = logging.getLogger(__name__)


_startup_time: float = 0.0
_requests_served: int = 0


# =============================================================================
# Request Handling
# =============================================================================

def parse_overrides(params: dict) -> Options:
    """
    Apply query-string overrides to the configured default options.

    Raises:
        OptionsValidationError: For unknown names or out-of-range values
    """
    known = set(Options.model_fields)
    unknown = sorted(set(params) - known)
    if unknown:
        raise OptionsValidationError(f"Unknown options: {', '.join(unknown)}")
    return settings.drawing.with_overrides(**params)


def render(image_bytes: bytes, options: Options) -> bytes:
    """Decode, draw and encode. Runs in a worker thread."""
    image = decode_luminance(image_bytes)
    pipeline = CoherentLineDrawing(options, scheduler=settings.parallel.scheduler())
    result = pipeline.generate(image)
    return encode_image(result.mask, ".png")


# =============================================================================
# Lifespan Management
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan manager."""
    global _startup_time

    setup_logging(settings)
    _startup_time = time.time()
    logger.info(f"Starting linedraw service {__version__}")

    yield

    logger.info("Shutdown complete")


# =============================================================================
# FastAPI Application
# =============================================================================

app = FastAPI(
    title="linedraw",
    description="Coherent line drawings from raster images",
    version=__version__,
    lifespan=lifespan,
)


# =============================================================================
# HTTP Endpoints
# =============================================================================

@app.get("/")
async def root() -> JSONResponse:
    """Service information endpoint."""
    return JSONResponse({
        "service": "linedraw",
        "version": __version__,
        "status": "running",
        "workers": settings.parallel.workers or os.cpu_count(),
    })


@app.get("/health")
async def health() -> JSONResponse:
    """
    Liveness probe - is the process alive?

    Always returns 200 if the service is running.
    """
    return JSONResponse({
        "status": "healthy",
        "uptime_seconds": round(time.time() - _startup_time, 1),
        "requests_served": _requests_served,
    })


@app.get("/options")
async def default_options() -> JSONResponse:
    """Configured default line drawing options."""
    return JSONResponse(settings.drawing.model_dump(mode="json"))


@app.post("/generate")
async def generate(request: Request) -> Response:
    """
    Render a line drawing of the request body.

    Returns 400 for an empty or undecodable body, 413 when the body is
    too large and 422 for invalid options.
    """
    global _requests_served

    try:
        options = parse_overrides(dict(request.query_params))
    except OptionsValidationError as e:
        return JSONResponse({"error": str(e)}, status_code=422)

    limit = settings.server.max_upload_bytes
    too_large = JSONResponse({"error": f"Body exceeds {limit} bytes"}, status_code=413)

    # Reject on the declared size before reading anything
    declared = request.headers.get("content-length")
    if declared is not None and declared.isdigit() and int(declared) > limit:
        return too_large

    body = await request.body()
    if not body:
        return JSONResponse({"error": "Empty request body"}, status_code=400)
    if len(body) > limit:
        return too_large

    start = time.perf_counter()
    try:
        png = await asyncio.to_thread(render, body, options)
    except ImageDecodeError as e:
        logger.warning(f"Rejected upload: {e}")
        return JSONResponse({"error": str(e)}, status_code=400)

    _requests_served += 1
    elapsed_ms = (time.perf_counter() - start) * 1000
    logger.info(f"Rendered {len(body)} byte upload in {elapsed_ms:.0f}ms")

    return Response(content=png, media_type="image/png")


# =============================================================================
# Main Entry Point
# =============================================================================

def run() -> None:
    """Start the service with uvicorn."""
    import uvicorn

    # Cloud Run uses PORT env var
    port = int(os.environ.get("PORT", settings.server.port))

    uvicorn.run(
        "linedraw.main:app",
        host=settings.server.host,
        port=port,
        reload=False,
    )


if __name__ == "__main__":
    run()
