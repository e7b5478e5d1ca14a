"""FastAPI REST API for markup-compressor."""

from __future__ import annotations

import hashlib
import json
import logging
import os
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator

import redis.asyncio as aioredis
from fastapi import Body, FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import Response
from pydantic import BaseModel, Field

from markup_compressor import (
    CompressionConfig,
    CompressionLevel,
    Compressor,
    __version__,
    detect_level,
    minify,
)

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Redis Cache
# ---------------------------------------------------------------------------

redis_client: aioredis.Redis | None = None

# Cache TTL in seconds (default: 1 hour)
CACHE_TTL = int(os.getenv("CACHE_TTL", "3600"))

# Redis connection URL
REDIS_URL = os.getenv("REDIS_URL", "redis://redis:6379")

compressor = Compressor(CompressionConfig.from_env())


def _generate_cache_key(prefix: str, data: dict) -> str:
    """Generate a cache key from request data."""
    sorted_data = json.dumps(data, sort_keys=True)
    hash_value = hashlib.sha256(sorted_data.encode()).hexdigest()[:16]
    return f"{prefix}:{hash_value}"


# ---------------------------------------------------------------------------
# Request / Response models
# ---------------------------------------------------------------------------


class CompressRequest(BaseModel):
    """Request body for markup compression endpoints."""

    content: str = Field(..., description="HTML document or fragment to compress")
    level: int | None = Field(
        default=None,
        description="Compression level (0-4, clamped). Defaults to the server configuration",
    )
    content_type: str | None = Field(default="text/html", description="MIME type of the content")

    model_config = {"json_schema_extra": {
        "examples": [
            {
                "content": "<div class=\"card\">\n  <p>  Hello  </p>\n</div>",
                "level": 3,
            }
        ]
    }}


class StatsRequest(BaseModel):
    """Request body for the /compress/stats endpoint."""

    content: str = Field(..., description="Source text to minify")
    level: int = Field(default=int(CompressionLevel.AGGRESSIVE), description="Compression level (0-4, clamped)")
    kind: str = Field(default="HTML", description="Content kind: HTML, JS or CSS")


class ComponentRequest(BaseModel):
    """Request body for the /compress/component endpoint."""

    content: str = Field(..., description="HTML fragment to compress")


class ComponentResponse(BaseModel):
    """Response body for the /compress/component endpoint."""

    content: str = Field(..., description="Minified fragment")


class StatsResponse(BaseModel):
    """Response body for the /compress/stats endpoint."""

    content: str = Field(..., description="Minified text")
    original_length: int = Field(..., description="Original length in UTF-8 bytes")
    compressed_length: int = Field(..., description="Minified length in UTF-8 bytes")
    ratio: float = Field(..., description="Compression ratio (0.0-1.0)")
    savings_pct: float = Field(..., description="Percentage of bytes saved")
    level: int = Field(..., description="Compression level used")
    kind: str = Field(..., description="Content kind")


class HealthResponse(BaseModel):
    """Response body for health check."""

    status: str = "ok"
    version: str
    cache_enabled: bool = False
    redis_connected: bool = False
    compression: dict[str, Any] = Field(default_factory=dict)


class CacheStatsResponse(BaseModel):
    """Response body for cache statistics."""

    enabled: bool
    connected: bool
    ttl_seconds: int
    redis_url: str
    keys_count: int | None = None
    memory_used: str | None = None


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _effective_compressor(level: int | None) -> Compressor:
    """Return the shared compressor, or a copy pinned to *level*."""
    if level is None:
        return compressor
    return Compressor(compressor.config.with_level(level))


def _stats_response(text: str, original: str, level: int, kind: str) -> StatsResponse:
    original_length = len(original.encode("utf-8"))
    compressed_length = len(text.encode("utf-8"))
    ratio = compressed_length / original_length if original_length else 1.0
    return StatsResponse(
        content=text,
        original_length=original_length,
        compressed_length=compressed_length,
        ratio=round(ratio, 4),
        savings_pct=round((1 - ratio) * 100, 1),
        level=level,
        kind=kind.upper(),
    )


# ---------------------------------------------------------------------------
# Application
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Manage application lifespan - setup Redis connection."""
    global redis_client
    try:
        redis_client = await aioredis.from_url(
            REDIS_URL,
            encoding="utf-8",
            decode_responses=True,
        )
        await redis_client.ping()
        logger.info("Connected to Redis at %s", REDIS_URL)
    except Exception as e:
        logger.warning("Redis unavailable: %s. Caching disabled.", e)
        redis_client = None

    yield

    if redis_client:
        await redis_client.close()


app = FastAPI(
    title="Markup Compressor API",
    description=(
        "REST API for minifying server-rendered HTML with embedded JavaScript and CSS. "
        "Preformatted regions and script literals are left byte-for-byte intact; "
        "responses are gzipped when the client accepts it."
    ),
    version=__version__,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------


@app.get("/health", response_model=HealthResponse, tags=["Health"])
async def health_check() -> HealthResponse:
    """Check API health, version, cache status and compression settings."""
    redis_connected = False
    if redis_client:
        try:
            await redis_client.ping()
            redis_connected = True
        except Exception:
            logger.warning("Redis ping failed", exc_info=True)

    return HealthResponse(
        status="ok",
        version=__version__,
        cache_enabled=redis_client is not None,
        redis_connected=redis_connected,
        compression=compressor.describe(),
    )


@app.get("/cache/stats", response_model=CacheStatsResponse, tags=["Cache"])
async def cache_stats() -> CacheStatsResponse:
    """Get cache statistics and Redis connection info."""
    keys_count = None
    memory_used = None
    connected = False

    if redis_client:
        try:
            await redis_client.ping()
            connected = True
            keys_count = len(await redis_client.keys("compress_stats:*"))

            info = await redis_client.info("memory")
            memory_used = info.get("used_memory_human", "unknown")
        except Exception:
            logger.warning("Could not read Redis statistics", exc_info=True)

    return CacheStatsResponse(
        enabled=redis_client is not None,
        connected=connected,
        ttl_seconds=CACHE_TTL,
        redis_url=REDIS_URL.split("@")[-1] if "@" in REDIS_URL else REDIS_URL,
        keys_count=keys_count,
        memory_used=memory_used,
    )


@app.post("/compress", tags=["Compression"])
async def compress_markup(req: CompressRequest, request: Request) -> Response:
    """Compress an HTML payload for delivery.

    The body is minified, prefixed with the configured banner and gzipped
    when the request's Accept-Encoding allows it. The response carries the
    matching Content-Encoding, Content-Type and Vary headers.
    """
    payload = _effective_compressor(req.level).compress(
        req.content,
        content_type=req.content_type,
        accept_encoding=request.headers.get("accept-encoding"),
    )
    headers = payload.headers()
    headers["X-Compression-Level"] = payload.level.name
    return Response(content=payload.body, headers=headers)


@app.post("/compress/stats", response_model=StatsResponse, tags=["Compression"])
async def compress_with_stats(req: StatsRequest) -> StatsResponse:
    """Minify HTML, JS or CSS and return size statistics.

    Results are cached in Redis for improved performance.
    """
    try:
        cache_key = _generate_cache_key("compress_stats", req.model_dump())

        if redis_client:
            cached = await redis_client.get(cache_key)
            if cached:
                return StatsResponse(**json.loads(cached))

        result = minify(req.content, req.level, req.kind)
        level = CompressionLevel.clamp(req.level)
        if level == CompressionLevel.AUTO:
            level = detect_level(req.content)
        response = _stats_response(result.text, req.content, level, req.kind)

        if redis_client:
            await redis_client.setex(cache_key, CACHE_TTL, response.model_dump_json())

        return response
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e)) from e


@app.post("/compress/component", response_model=ComponentResponse, tags=["Compression"])
async def compress_component(req: ComponentRequest) -> ComponentResponse:
    """Minify an HTML fragment at the highest level, without banner or gzip."""
    return ComponentResponse(content=compressor.compress_component(req.content))


@app.post("/compress/json", tags=["Compression"])
async def compress_json(request: Request, data: Any = Body(...)) -> Response:
    """Re-encode a JSON document compactly, gzipped when the client accepts it."""
    try:
        payload = compressor.compress_json(data, accept_encoding=request.headers.get("accept-encoding"))
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e)) from e

    headers = payload.headers()
    return Response(content=payload.body, headers=headers)
