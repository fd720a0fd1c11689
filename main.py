from __future__ import annotations

import logging
import time
import uuid
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware

from core.cleanup.collector import GarbageCollector
from core.cleanup.ledger import CleanupLedger
from core.logging_config import configure_logging
from core.response_envelope import error_response, http_exception_response, request_id_of
from core.scheduler import build_scheduler, register_cleanup_job
from core.settings import get_settings
from core.storage.manager import FileStorageManager

settings = get_settings()
configure_logging(settings.log_level)
logger = logging.getLogger(__name__)


class RequestIdMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        request.state.request_id = request_id
        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id
        return response


class RequestTimingMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        start_time = time.time()
        response = await call_next(request)
        response.headers["X-Process-Time"] = str(time.time() - start_time)
        return response


@asynccontextmanager
async def lifespan(app: FastAPI):
    ledger = CleanupLedger.in_directory(settings.cleanup_data_dir)
    storage = FileStorageManager.configure_from_settings(settings)
    collector = GarbageCollector(
        ledger=ledger,
        storage=storage,
        retention_days=settings.cleanup_retention_days,
    )

    app.state.settings = settings
    app.state.ledger = ledger
    app.state.storage = storage
    app.state.collector = collector

    scheduler = build_scheduler()
    register_cleanup_job(scheduler, collector, interval_minutes=settings.cleanup_interval_minutes)
    scheduler.start()
    try:
        yield
    finally:
        scheduler.shutdown(wait=False)


app = FastAPI(lifespan=lifespan, title="Document Storage API")
app.add_middleware(RequestIdMiddleware)
app.add_middleware(RequestTimingMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=list(settings.cors_origins) if settings.cors_origins else ["http://localhost:3000"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(HTTPException)
async def custom_http_exception_handler(request: Request, exc: HTTPException):
    return http_exception_response(exc=exc, request=request)


@app.exception_handler(RequestValidationError)
async def custom_validation_exception_handler(request: Request, exc: RequestValidationError):
    return error_response(
        status_code=422,
        message="Validation error",
        data={
            "code": "VALIDATION_FAILED",
            "details": [{key: value for key, value in error.items() if key != "ctx"} for error in exc.errors()],
        },
        request_id=request_id_of(request),
    )


@app.exception_handler(Exception)
async def custom_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s", request.url.path)
    details = str(exc) if (settings.debug_include_error_details and not settings.is_production) else None
    return error_response(
        status_code=500,
        message="Internal Server Error",
        data={"code": "INTERNAL_ERROR", "details": details},
        request_id=request_id_of(request),
    )


@app.get("/health", tags=["Health"])
async def health_check(request: Request):
    services: dict[str, dict[str, object]] = {}
    overall_status = "healthy"

    start = time.perf_counter()
    try:
        stats = request.app.state.ledger.stats()
        services["ledger"] = {
            "status": "healthy",
            "latency_ms": round((time.perf_counter() - start) * 1000, 2),
            "stats": stats.as_dict(),
        }
    except Exception as exc:
        overall_status = "degraded"
        services["ledger"] = {
            "status": "unhealthy",
            "latency_ms": round((time.perf_counter() - start) * 1000, 2),
            "message": str(exc),
        }

    providers = request.app.state.storage.configured_providers()
    services["storage"] = {
        "status": "healthy" if len(providers) > 1 else "degraded",
        "providers": providers,
    }

    return {
        "status": overall_status,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "services": services,
    }


from api.v1.cleanup_route import router as v1_cleanup_route_router
from api.v1.files_route import router as v1_files_route_router
from api.v1.uploads_route import router as v1_uploads_route_router

app.include_router(v1_cleanup_route_router, prefix="/api")
app.include_router(v1_files_route_router, prefix="/api")
app.include_router(v1_uploads_route_router, prefix="/api")
