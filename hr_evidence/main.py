"""
HR Evidence Evaluation API.

Mounts the employee, evidence journal, period and evaluation routers under
settings.api_prefix. Every error leaves through ApiResponse as
{"success": false, "errors": [...]}; health checks live at the root.
"""
import logging
import time
import uuid
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Union

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware

import hr_evidence.models  # noqa: F401
from hr_evidence.core.config import settings
from hr_evidence.core.exceptions import AppException
from hr_evidence.core.logging import request_id_var, setup_logging
from hr_evidence.core.schemas import ApiResponse
from hr_evidence.database import SessionLocal, init_db
from hr_evidence.routers.api_router import api_router

setup_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"Starting {settings.app_name} v{settings.version} ({settings.environment})")
    init_db()
    logger.info("Evidence schema ready")
    yield
    logger.info(f"{settings.app_name} stopped")


class CorrelationIdMiddleware(BaseHTTPMiddleware):
    """Propagates X-Request-ID into the logging context and the response."""

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get(settings.request_id_header) or uuid.uuid4().hex
        token = request_id_var.set(request_id)
        started = time.perf_counter()
        try:
            response = await call_next(request)
        finally:
            request_id_var.reset(token)
        response.headers[settings.request_id_header] = request_id
        response.headers["X-Process-Time"] = f"{time.perf_counter() - started:.4f}"
        return response


def _error_response(status_code: int, body: ApiResponse) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=body.to_dict())


app = FastAPI(
    title=settings.app_name,
    version=settings.version,
    description="Evidence-based performance evaluations: journal, periods and dimension aggregation",
    lifespan=lifespan,
)

# Last added runs first: CORS wraps the correlation id
app.add_middleware(CorrelationIdMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=[settings.request_id_header, "X-Process-Time"],
)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    field_errors = [
        {"field": str(error["loc"][-1]) if error["loc"] else "unknown", "msg": error["msg"]}
        for error in exc.errors()
    ]
    logger.warning(f"Rejected request to {request.url.path}: {field_errors}")
    return _error_response(422, ApiResponse.invalid(field_errors))


@app.exception_handler(AppException)
async def app_exception_handler(request: Request, exc: AppException):
    logger.warning(exc.message, extra={"code": exc.error_code, "path": request.url.path})
    return _error_response(exc.status_code, ApiResponse.fail(exc.message, exc.error_code))


@app.exception_handler(StarletteHTTPException)
@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: Union[HTTPException, StarletteHTTPException]):
    message = exc.detail if isinstance(exc.detail, str) else "Request failed"
    return _error_response(exc.status_code, ApiResponse.fail(message))


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled server error", extra={"path": request.url.path})
    return _error_response(500, ApiResponse.fail("An unexpected server error occurred.", "INTERNAL_ERROR"))


app.include_router(api_router, prefix=settings.api_prefix)


@app.get("/", tags=["Health"])
def root():
    return {
        "message": "HR Evidence Evaluation API",
        "version": settings.version,
        "docs": "/docs",
    }


@app.get("/health", tags=["Health"])
def health_check():
    return {
        "status": "up",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "version": settings.version,
        "environment": settings.environment,
    }


@app.get("/readiness", tags=["Health"])
def readiness_check():
    """Ready once the evidence database answers."""
    try:
        with SessionLocal() as session:
            session.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        logger.error(f"Readiness check failed: {e}")
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Evidence database unavailable")
    return {"status": "ready", "components": {"database": "connected"}}


@app.get("/liveness", tags=["Health"])
def liveness_check():
    return health_check()
