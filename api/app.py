"""
FastAPI application factory for the fiscal dashboards.

Usage:
    python -m api.app                    # Dev server on port 8000
    APP_SOURCE_URL=https://xyz.supabase.co APP_SOURCE_KEY=... python -m api.app

OpenAPI docs available at http://localhost:8000/docs after starting.

Each dataset is loaded in full from the REST source the first time it is
requested, then served from memory until its engine expires.

Logging: APP_LOG_FORMAT=json switches request and engine logs to
newline-delimited JSON.
"""

import json
import logging
import time
import uuid
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from starlette.exceptions import HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from api.engines import EngineRegistry
from api.routes import dashboards
from engine.source import MemorySource, PostgrestSource
from utils.config import AppConfig

# ── Configuration ─────────────────────────────────────────────────────────────
_cfg = AppConfig.from_env()

# ── Structured JSON logging ───────────────────────────────────────────────────


class _JsonFormatter(logging.Formatter):
    """Emit log records as newline-delimited JSON."""

    def format(self, record: logging.LogRecord) -> str:
        data: dict = {
            "timestamp": self.formatTime(record, "%Y-%m-%dT%H:%M:%S"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        # Merge extra fields added via logger.info("...", extra={...})
        for key in ("method", "path", "status", "duration_ms", "request_id"):
            if hasattr(record, key):
                data[key] = getattr(record, key)
        if record.exc_info:
            data["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(data)


_logger = logging.getLogger("fiscal_dashboards_api")
_handler = logging.StreamHandler()
if _cfg.log_format == "json":
    _handler.setFormatter(_JsonFormatter())
else:
    _handler.setFormatter(
        logging.Formatter("%(asctime)s %(levelname)s %(name)s %(message)s")
    )
logging.basicConfig(handlers=[_handler], level=logging.INFO, force=True)

_app_start_time: float = time.time()


def build_registry(cfg: AppConfig) -> EngineRegistry:
    """Create the engine registry for *cfg*'s data source.

    Without APP_SOURCE_URL the registry gets an empty in-memory source, so
    every dashboard load fails with "unknown table" instead of the API
    refusing to start.
    """
    if cfg.source_url:
        source = PostgrestSource(cfg.source_config())
    else:
        _logger.warning("APP_SOURCE_URL is not set; dashboards will fail to load")
        source = MemorySource({})
    return EngineRegistry(
        source,
        loader_config=cfg.loader_config(),
        ttl_seconds=cfg.engine_ttl,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Release engines and the source's HTTP session on shutdown."""
    yield
    registry: EngineRegistry = app.state.registry
    registry.close()
    close = getattr(registry.source, "close", None)
    if close is not None:
        close()


def create_app(registry: EngineRegistry | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        registry: Engine registry to serve (tests pass one backed by a
            MemorySource).  Defaults to one built from the environment.

    Returns:
        Configured FastAPI application instance.
    """
    app = FastAPI(
        title="Fiscal Dashboards API",
        summary="Rollups and drill-downs over state fiscal datasets.",
        description=(
            "## Fiscal Dashboards API\n\n"
            "Capital appropriations, discretionary grants and revenue receipts, "
            "rolled up by agency or fund group with per-group line items.\n\n"
            "### Key concepts\n"
            "- **Amounts** are in whole dollars; revenue figures published in "
            "millions are converted on load.\n"
            "- **Loading**: a dataset is read in full the first time it is "
            "requested. Until then its status is `loading` and its table is empty.\n"
            "- **Context** endpoints return plain text used to seed a chat prompt."
        ),
        version="1.0.0",
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_tags=[
            {
                "name": "dashboards",
                "description": "Rollup tables, drill-downs and chat context per dataset.",
            },
            {
                "name": "meta",
                "description": "Health check.",
            },
        ],
    )
    app.state.registry = registry if registry is not None else build_registry(_cfg)

    # ── CORS middleware ───────────────────────────────────────────────────────
    app.add_middleware(
        CORSMiddleware,
        allow_origins=_cfg.cors_origins,
        allow_credentials=False,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
    )

    # ── Request logging middleware ────────────────────────────────────────────

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        """Log each request with its duration and attach a request ID."""
        request_id = str(uuid.uuid4())[:8]
        start = time.monotonic()
        response = await call_next(request)
        duration_ms = (time.monotonic() - start) * 1000
        response.headers["X-Request-ID"] = request_id

        if _cfg.log_format == "json":
            _logger.info(
                "request",
                extra={
                    "method": request.method,
                    "path": request.url.path,
                    "status": response.status_code,
                    "duration_ms": round(duration_ms, 1),
                    "request_id": request_id,
                },
            )
        else:
            _logger.info(
                "method=%s path=%s status=%d duration_ms=%.1f rid=%s",
                request.method, request.url.path, response.status_code,
                duration_ms, request_id,
            )
        return response

    # ── Error handling ────────────────────────────────────────────────────────

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException):
        error = "Not found" if exc.status_code == 404 else "Request failed"
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": error, "detail": exc.detail, "status_code": exc.status_code},
        )

    @app.exception_handler(ValueError)
    async def value_error_handler(request: Request, exc: ValueError):
        return JSONResponse(
            status_code=400,
            content={"error": "Bad request", "detail": str(exc), "status_code": 400},
        )

    @app.exception_handler(Exception)
    async def generic_exception_handler(request: Request, exc: Exception):
        """Catch unhandled exceptions and return JSON instead of a traceback."""
        _logger.exception("unhandled path=%s", request.url.path)
        return JSONResponse(
            status_code=500,
            content={
                "error": "Internal server error",
                "detail": str(exc),
                "status_code": 500,
            },
        )

    # ── Health check ──────────────────────────────────────────────────────────

    @app.get("/health", tags=["meta"], summary="Health check")
    def health():
        """Return 200 OK with uptime, served datasets and engine cache stats."""
        reg: EngineRegistry = app.state.registry
        return {
            "status": "ok",
            "uptime_seconds": round(time.time() - _app_start_time, 2),
            "datasets": sorted(reg.datasets),
            "engine_cache": reg.stats(),
        }

    # ── Register routers ──────────────────────────────────────────────────────

    app.include_router(dashboards.router, prefix="/api/v1")

    return app


# Singleton instance for uvicorn
app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "api.app:app",
        host=_cfg.api_host,
        port=_cfg.api_port,
        reload=True,
        log_level="info",
    )
