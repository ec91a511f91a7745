# This project was developed with assistance from AI tools.
"""FastAPI application entry point."""

import logging
import uuid

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .core.config import settings
from .middleware.pii import PIICacheControlMiddleware
from .routes import beneficiaries, health, services, sync
from .schemas.error import ErrorResponse
from .services.crypto import DecryptionError
from .services.scope import ScopeResolutionError

logger = logging.getLogger(__name__)

app = FastAPI(
    title="Program Management API",
    description="Role-scoped data access for humanitarian program management",
    version="0.1.0",
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_HOSTS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type"],
    expose_headers=["X-PII-Access"],
)

# Cache directives for responses that carried plaintext PII
app.add_middleware(PIICacheControlMiddleware)

_HTTP_STATUS_TITLES: dict[int, str] = {
    400: "Bad Request",
    401: "Unauthorized",
    403: "Forbidden",
    404: "Not Found",
    422: "Unprocessable Entity",
    500: "Internal Server Error",
}


def _request_id(request: Request) -> str:
    return request.headers.get("x-request-id", str(uuid.uuid4()))


def _problem(request: Request, status_code: int, detail: str, request_id: str) -> JSONResponse:
    body = ErrorResponse(
        title=_HTTP_STATUS_TITLES.get(status_code, "Error"),
        status=status_code,
        detail=detail,
        request_id=request_id,
        instance=request.url.path,
    )
    return JSONResponse(status_code=status_code, content=body.model_dump())


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Convert HTTPException to RFC 7807 Problem Details."""
    response = _problem(request, exc.status_code, str(exc.detail), _request_id(request))
    if exc.headers:
        response.headers.update(exc.headers)
    return response


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Convert Pydantic validation errors to RFC 7807 Problem Details."""
    return _problem(request, 422, str(exc.errors()), _request_id(request))


@app.exception_handler(ScopeResolutionError)
async def scope_error_handler(request: Request, exc: ScopeResolutionError):
    """Scope could not be computed; never fall back to an empty or open scope."""
    request_id = _request_id(request)
    logger.error("Scope resolution failed (request_id=%s): %s", request_id, exc)
    return _problem(request, 500, "An unexpected error occurred.", request_id)


@app.exception_handler(DecryptionError)
async def decryption_error_handler(request: Request, exc: DecryptionError):
    """A PII envelope failed to decrypt; the response must not leak which field."""
    request_id = _request_id(request)
    logger.error("PII decryption failed (request_id=%s): %s", request_id, exc)
    return _problem(request, 500, "An unexpected error occurred.", request_id)


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    """Catch-all for unhandled exceptions -- log and return 500."""
    request_id = _request_id(request)
    logger.exception("Unhandled exception (request_id=%s)", request_id)
    return _problem(request, 500, "An unexpected error occurred.", request_id)


# Include routers
app.include_router(health.router, prefix="/health", tags=["health"])
app.include_router(beneficiaries.router, prefix="/api/beneficiaries", tags=["beneficiaries"])
app.include_router(services.router, prefix="/api/services", tags=["services"])
app.include_router(sync.router, prefix="/api/sync", tags=["sync"])


@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint"""
    return {"message": f"Welcome to {settings.APP_NAME}"}
