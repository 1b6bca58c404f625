"""
Symposium Submission Service

FastAPI application entry point.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator, Dict, Type

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from symposium.api.middleware.request_id import RequestIdMiddleware
from symposium.api.v1 import router as api_v1_router
from symposium.config import get_settings
from symposium.database import close_db, init_db
from symposium.kernel.errors import (
    Conflict,
    ExternalFailure,
    Forbidden,
    InvalidInput,
    InvalidState,
    NotFound,
    WorkflowError,
)
from symposium.logging_config import configure_logging, get_logger
from symposium.schemas.common import ErrorResponse, HealthResponse
from symposium.services.notifier import build_notifier
from symposium.services.storage import build_blob_store

settings = get_settings()
logger = get_logger(__name__)

ERROR_STATUS_CODES: Dict[Type[WorkflowError], int] = {
    NotFound: status.HTTP_404_NOT_FOUND,
    Conflict: status.HTTP_409_CONFLICT,
    Forbidden: status.HTTP_403_FORBIDDEN,
    InvalidState: status.HTTP_409_CONFLICT,
    InvalidInput: status.HTTP_400_BAD_REQUEST,
    ExternalFailure: status.HTTP_502_BAD_GATEWAY,
}


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    """
    Application lifespan handler.

    Configures logging, creates tables and builds the blob store and
    notifier that every request shares.
    """
    configure_logging(
        log_level=settings.log_level,
        environment=settings.environment,
        debug=settings.debug,
    )

    logger.info("Starting %s v%s", settings.project_name, settings.version)
    await init_db()
    logger.info("Database initialized")

    app.state.blob_store = build_blob_store(settings)
    app.state.notifier = build_notifier(settings)
    logger.info(
        "Collaborators ready",
        extra={"storage_backend": settings.storage_backend, "email_enabled": settings.email_enabled},
    )

    yield

    logger.info("Shutting down...")
    await close_db()
    logger.info("Database connections closed")


app = FastAPI(
    title=settings.project_name,
    description="""
    Submission and review workflow for the symposium.

    - **Submissions**: authors submit papers with a PDF inside the event's window
    - **Assignments**: administrators assign reviewers
    - **Reviews**: reviewers save drafts and complete reviews; once every
      assigned review is complete the submission is ready for a decision
    - **Decisions**: administrators accept, reject or request revision and
      notify the author
    """,
    version=settings.version,
    lifespan=lifespan,
    docs_url="/docs" if settings.debug else None,
    redoc_url="/redoc" if settings.debug else None,
)


# add_middleware stacks innermost-first, so the last one added is outermost
_cors_origins = [
    "http://localhost:3000",
    "http://localhost:5173",
    "http://127.0.0.1:3000",
]
if settings.frontend_url not in _cors_origins:
    _cors_origins.insert(0, settings.frontend_url)

app.add_middleware(RequestIdMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _cors_headers(request: Request) -> dict:
    """CORS headers for error responses, which can bypass the CORS middleware."""
    origin = request.headers.get("origin") or ""
    allow_origin = origin if origin in _cors_origins else _cors_origins[0]
    headers = {
        "Access-Control-Allow-Origin": allow_origin,
        "Access-Control-Allow-Credentials": "true",
    }
    req_id = getattr(request.state, "request_id", None)
    if req_id:
        headers["X-Request-ID"] = req_id
    return headers


@app.exception_handler(WorkflowError)
async def workflow_exception_handler(request: Request, exc: WorkflowError):
    """Map workflow error kinds to status codes."""
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    for error_type, code in ERROR_STATUS_CODES.items():
        if isinstance(exc, error_type):
            status_code = code
            break

    if status_code >= 500:
        logger.error("Workflow error: %s", exc.message, extra={"code": exc.code})
    content = ErrorResponse(detail=exc.message, code=exc.code, context=exc.detail or None)
    return JSONResponse(
        status_code=status_code,
        content=content.model_dump(mode="json", exclude_none=True),
        headers=_cors_headers(request),
    )


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    headers = _cors_headers(request)
    if exc.headers:
        headers.update(exc.headers)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail}, headers=headers)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(
    request: Request,
    exc: RequestValidationError,
):
    """Handle request validation errors."""
    errors = []
    for error in exc.errors():
        field = ".".join(str(loc) for loc in error["loc"])
        errors.append({
            "field": field,
            "message": error["msg"],
            "type": error["type"],
        })
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={"detail": "Validation error", "errors": errors},
        headers=_cors_headers(request),
    )


@app.exception_handler(Exception)
async def general_exception_handler(
    request: Request,
    exc: Exception,
):
    """Handle unexpected exceptions, database errors included."""
    logger.exception("Unhandled exception: %s", exc)
    req_id = getattr(request.state, "request_id", None)
    if settings.debug:
        content = {
            "detail": str(exc),
            "type": type(exc).__name__,
            "request_id": req_id,
        }
    else:
        content = {"detail": "Internal server error", "request_id": req_id}
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=content,
        headers=_cors_headers(request),
    )


@app.get("/health", response_model=HealthResponse, tags=["Health"])
async def health_check():
    """Check application health."""
    return HealthResponse(
        status="ok",
        version=settings.version,
        database="connected",
    )


@app.get("/", tags=["Root"])
async def root():
    """Root endpoint with API information."""
    return {
        "name": settings.project_name,
        "version": settings.version,
        "docs": "/docs" if settings.debug else "disabled",
        "api": {
            "v1": settings.api_v1_prefix,
        },
    }


app.include_router(
    api_v1_router,
    prefix=settings.api_v1_prefix,
)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "symposium.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.debug,
    )
