from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import Depends, FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from alumni_api.api.deps import get_services
from alumni_api.api.v1.router import api_router
from alumni_api.core import config
from alumni_api.core.config import validate_settings
from alumni_api.core.exceptions import (
    AttachmentTooLargeError,
    AuthenticationError,
    ConfigurationError,
    ConflictError,
    ContentServiceException,
    InvalidAttachmentTypeError,
    NotFoundError,
    StorageUnavailableError,
    UnauthorizedError,
    ValidationError,
    sanitize_error_message,
)
from alumni_api.core.logging_config import get_logger, setup_logging
from alumni_api.core.response_helpers import error_body, error_response_for
from alumni_api.core.security_middleware import SecurityHeadersMiddleware
from alumni_api.core.storage_calls import call_storage
from alumni_api.services.container import ServiceContainer

# Setup logging first (before settings validation)
setup_logging()
logger = get_logger(__name__)

if config.settings is None:
    # Surface the reason instead of failing on attribute access below
    validate_settings()
settings = config.settings

STATUS_BY_EXCEPTION = [
    (ValidationError, status.HTTP_400_BAD_REQUEST),
    (InvalidAttachmentTypeError, status.HTTP_415_UNSUPPORTED_MEDIA_TYPE),
    (AttachmentTooLargeError, status.HTTP_413_REQUEST_ENTITY_TOO_LARGE),
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (AuthenticationError, status.HTTP_401_UNAUTHORIZED),
    (UnauthorizedError, status.HTTP_403_FORBIDDEN),
    (ConflictError, status.HTTP_409_CONFLICT),
    (StorageUnavailableError, status.HTTP_503_SERVICE_UNAVAILABLE),
    (ConfigurationError, status.HTTP_500_INTERNAL_SERVER_ERROR),
]


def status_code_for(exc: ContentServiceException) -> int:
    for exc_type, code in STATUS_BY_EXCEPTION:
        if isinstance(exc, exc_type):
            return code
    return status.HTTP_400_BAD_REQUEST


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    try:
        logger.info("Validating configuration...")
        validate_settings()
        logger.info("Configuration validated successfully")

        current = config.settings
        logger.info(f"Starting {current.APP_NAME} v{current.APP_VERSION}")
        logger.info(f"Debug mode: {'ON' if current.DEBUG else 'OFF'}")
        logger.info(f"Content backend: {current.CONTENT_BACKEND}, attachment backend: {current.ATTACHMENT_BACKEND}")
    except ConfigurationError as e:
        logger.error(f"Configuration error: {e.message}")
        logger.error("Application startup failed due to configuration issues.")
        raise

    yield

    # Shutdown
    logger.info("Shutting down application")


# Disable docs in production
app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Events, announcements and class groups for the alumni portal",
    lifespan=lifespan,
    docs_url="/api/docs" if settings.DEBUG else None,
    redoc_url="/api/redoc" if settings.DEBUG else None,
    openapi_url="/api/openapi.json" if settings.DEBUG else None,
)


@app.exception_handler(ContentServiceException)
async def content_exception_handler(request: Request, exc: ContentServiceException):
    """Handle application exceptions."""
    status_code = status_code_for(exc)
    log = logger.error if status_code >= 500 else logger.info
    log(
        f"Application error: {exc.message}",
        extra={
            "error_code": exc.error_code,
            "path": str(request.url.path),
            "method": request.method,
        }
    )
    return JSONResponse(
        status_code=status_code,
        content=error_response_for(exc, include_details=bool(config.settings and config.settings.DEBUG)),
    )


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    first = errors[0] if errors else {}
    location = [str(part) for part in first.get("loc", ()) if part not in ("body", "query", "path", "form")]
    debug = bool(config.settings and config.settings.DEBUG)
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=error_body(
            code="REQUEST_VALIDATION_ERROR",
            message=first.get("msg", "Invalid request"),
            field=".".join(location) or None,
            details={"errors": [{"loc": list(e.get("loc", ())), "msg": e.get("msg")} for e in errors]} if debug else None,
        ),
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """Handle all other exceptions."""
    logger.exception(
        f"Unhandled exception: {type(exc).__name__}",
        extra={
            "path": str(request.url.path),
            "method": request.method,
        }
    )
    debug = bool(config.settings and config.settings.DEBUG)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_body(
            code="INTERNAL_ERROR",
            message=sanitize_error_message(exc, include_details=debug),
            details={"type": type(exc).__name__, "message": str(exc)} if debug else None,
        ),
    )


# Security headers middleware (add first to ensure headers are set)
app.add_middleware(SecurityHeadersMiddleware)

allowed_origins = [
    settings.FRONTEND_URL,
    "http://localhost:3000",
    "http://127.0.0.1:3000",
]
# Remove duplicates while preserving order
allowed_origins = list(dict.fromkeys(allowed_origins))

app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins if not settings.DEBUG else ["*"],
    allow_credentials=not settings.DEBUG,
    allow_methods=["GET", "POST", "PUT", "DELETE", "PATCH", "OPTIONS"],
    allow_headers=["*"],
)

app.include_router(api_router, prefix="/api/v1")

if settings.ATTACHMENT_BACKEND == "local":
    Path(settings.UPLOAD_DIR).mkdir(parents=True, exist_ok=True)
    app.mount(settings.UPLOAD_URL_PREFIX, StaticFiles(directory=settings.UPLOAD_DIR), name="uploads")


@app.get("/")
async def root():
    return {
        "message": f"Welcome to {settings.APP_NAME}",
        "version": settings.APP_VERSION,
        "docs": "/api/docs",
    }


@app.get("/health")
def health_check(services: ServiceContainer = Depends(get_services)):
    """Health check reporting content store connectivity."""
    health_status = {
        "status": "healthy",
        "service": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "content_backend": settings.CONTENT_BACKEND,
    }

    try:
        call_storage(
            "health check", services.content_store.ping,
            timeout=settings.STORAGE_TIMEOUT_SECONDS,
        )
        health_status["database"] = "connected"
    except StorageUnavailableError as e:
        logger.error(f"Database health check failed: {e.message}")
        health_status["database"] = "disconnected"
        health_status["status"] = "degraded"

    status_code = status.HTTP_200_OK if health_status["status"] == "healthy" else status.HTTP_503_SERVICE_UNAVAILABLE
    return JSONResponse(content=health_status, status_code=status_code)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("main:app", host="0.0.0.0", port=settings.PORT, reload=settings.DEBUG)
