"""
FastAPI application entry point.

Configures the API with all routes, middleware, and error handling.
"""

import logging
import time
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from servipro import __version__
from servipro.config import load_config
from servipro.errors import ServiproError, ValidationError
from servipro.log import setup_logging

from .deps import ServicesDep, close_services, get_services
from .responses import error_response
from .v1.router import router as api_router

logger = logging.getLogger(__name__)

HTTP_ERROR_CODES = {
    404: ("Ruta no encontrada", "RUTA_NO_ENCONTRADA"),
    405: ("Método no permitido", "METODO_NO_PERMITIDO"),
}

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "SAMEORIGIN",
    "Strict-Transport-Security": "max-age=31536000; includeSubDomains",
    "Referrer-Policy": "no-referrer",
    "X-DNS-Prefetch-Control": "off",
    "X-XSS-Protection": "0",
}

# Global scheduler instance
scheduler: Optional[AsyncIOScheduler] = None


def purge_expired_documents():
    """Background job: drop expired verifications and refresh sessions."""
    try:
        removed = get_services().store.purge_expired()
        if removed:
            logger.debug(f"Purged {removed} expired documents")
    except Exception as e:
        logger.error(f"Scheduled purge failed: {e}")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    """Application lifespan manager."""
    global scheduler

    config = load_config()
    setup_logging(config.log_level, config.log_dir)
    logger.info(f"Starting SERVIPRO API ({config.environment})...")

    # Initialize services on startup
    get_services(config)
    logger.info("Services initialized")

    # MongoDB purges through its TTL indexes
    if config.storage.backend != "mongodb":
        scheduler = AsyncIOScheduler()
        scheduler.add_job(
            purge_expired_documents,
            trigger=IntervalTrigger(seconds=config.storage.purge_interval_seconds),
            id="purge_expired",
            name="Purge expired verification codes and refresh tokens",
            replace_existing=True
        )
        scheduler.start()
        logger.info(
            f"Background purge every {config.storage.purge_interval_seconds}s "
            f"({config.storage.backend} store)"
        )

    yield

    # Cleanup on shutdown
    logger.info("Shutting down...")
    if scheduler:
        scheduler.shutdown(wait=False)
        scheduler = None
        logger.info("Scheduler stopped")
    close_services()


app = FastAPI(
    title="SERVIPRO API",
    description="Phone number authentication with SMS codes",
    version=__version__,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json"
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_middleware(GZipMiddleware, minimum_size=1000)


@app.middleware("http")
async def add_security_headers(request: Request, call_next):
    """Hardening headers on every response."""
    response = await call_next(request)
    for header, value in SECURITY_HEADERS.items():
        response.headers.setdefault(header, value)
    return response


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log method, path, status and duration of each request."""
    start_time = time.time()
    response = await call_next(request)
    process_time = (time.time() - start_time) * 1000
    logger.info(
        f"{request.method} {request.url.path} {response.status_code} "
        f"{process_time:.1f}ms"
    )
    return response


@app.exception_handler(ServiproError)
async def servipro_exception_handler(request: Request, exc: ServiproError):
    errores = exc.details if isinstance(exc, ValidationError) else None
    return error_response(exc.status_code, exc.message, exc.code, errores)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errores = []
    for err in exc.errors():
        loc = [str(part) for part in err.get("loc", ()) if part != "body"]
        ctx_error = (err.get("ctx") or {}).get("error")
        if ctx_error is not None:
            mensaje = str(ctx_error)
        elif err.get("type") == "missing":
            mensaje = "Campo obligatorio"
        else:
            mensaje = err.get("msg", "Valor inválido")
        errores.append({"campo": ".".join(loc) or "body", "mensaje": mensaje})

    return error_response(
        400,
        "Error de validación en los datos enviados",
        "VALIDACION_DATOS_INVALIDOS",
        errores
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    mensaje, codigo = HTTP_ERROR_CODES.get(exc.status_code, (str(exc.detail), "ERROR_HTTP"))
    return error_response(exc.status_code, mensaje, codigo, datos_nulos=True)


# Global exception handler
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled exception: {exc}", exc_info=True)
    return error_response(500, "Error interno del servidor", "ERROR_INTERNO", datos_nulos=True)


# Health check
@app.get("/health", tags=["System"])
def health_check(services: ServicesDep):
    """Health check endpoint."""
    storage_ok = services.store.ping()
    return {
        "status": "healthy" if storage_ok else "degraded",
        "service": "servipro-api",
        "storage": services.config.storage.backend
    }


# Include API routes
app.include_router(api_router, prefix="/api")


# Root endpoint
@app.get("/", tags=["System"])
async def root():
    """API root endpoint."""
    return {
        "name": "SERVIPRO API",
        "version": __version__,
        "docs": "/docs"
    }
