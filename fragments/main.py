"""Entry point for the fragments service."""

import time
import uuid

import uvicorn
from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from common.constants import SERVICE_NAME, SERVICE_VERSION
from common.logging_config import setup_logging
from fragments import config
from fragments.auth import BasicAuthenticator
from fragments.exceptions import (
    FragmentError,
    ValidationError,
    NotFoundError,
    UnsupportedMediaTypeError,
    PayloadTooLargeError,
    UnsupportedConversionError,
    ConversionFailedError,
    StorageError,
    InvalidCredentialsError
)
from fragments.response import create_error_response, create_success_response
from fragments.routes.fragment_routes import router as fragment_router
from fragments.storage import create_storage_backend

logger = setup_logging(SERVICE_NAME)

app = FastAPI(
    title="Fragments API",
    description="Per-user fragment storage with on-demand format conversion",
    version=SERVICE_VERSION
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """
    Middleware to log all HTTP requests and responses.
    """
    request_id = str(uuid.uuid4())
    request.state.request_id = request_id

    start_time = time.time()

    logger.info(f"Request started: {request.method} {request.url.path} [request_id={request_id}]")

    response = await call_next(request)

    duration = time.time() - start_time

    logger.info(
        f"Request completed: {request.method} {request.url.path} "
        f"status={response.status_code} duration={duration:.3f}s [request_id={request_id}]"
    )

    response.headers["X-Request-ID"] = request_id

    return response


@app.on_event("startup")
async def startup_event():
    """
    Create the storage backend and authenticator once for the process.
    """
    logger.info("Fragments service starting up...")

    app.state.storage = create_storage_backend()
    logger.info(f"Storage backend initialized: {config.STORAGE_BACKEND}")

    if config.HTPASSWD_FILE:
        app.state.authenticator = BasicAuthenticator.from_htpasswd(config.HTPASSWD_FILE)
    else:
        app.state.authenticator = None
        logger.warning("HTPASSWD_FILE is not set - all fragment requests will be rejected")


@app.on_event("shutdown")
async def shutdown_event():
    """
    Release the storage backend on application shutdown.
    """
    logger.info("Fragments service shutting down...")

    storage = getattr(app.state, "storage", None)
    if storage is not None:
        await storage.close()
        logger.info("Storage backend closed")


def _error(request: Request, status_code: int, exc: Exception, headers=None) -> JSONResponse:
    request_id = getattr(request.state, 'request_id', 'unknown')
    if status_code >= 500:
        logger.error(
            f"{type(exc).__name__}: {exc} [request_id={request_id}] path={request.url.path}",
            exc_info=exc
        )
    else:
        logger.warning(f"{type(exc).__name__}: {exc} [request_id={request_id}] path={request.url.path}")
    return JSONResponse(
        status_code=status_code,
        content=create_error_response(status_code, str(exc)),
        headers=headers
    )


@app.exception_handler(ValidationError)
async def validation_error_handler(request: Request, exc: ValidationError):
    return _error(request, status.HTTP_400_BAD_REQUEST, exc)


@app.exception_handler(InvalidCredentialsError)
async def invalid_credentials_handler(request: Request, exc: InvalidCredentialsError):
    return _error(request, status.HTTP_401_UNAUTHORIZED, exc, headers={"WWW-Authenticate": "Basic"})


@app.exception_handler(NotFoundError)
async def not_found_handler(request: Request, exc: NotFoundError):
    return _error(request, status.HTTP_404_NOT_FOUND, exc)


@app.exception_handler(PayloadTooLargeError)
async def payload_too_large_handler(request: Request, exc: PayloadTooLargeError):
    return _error(request, status.HTTP_413_REQUEST_ENTITY_TOO_LARGE, exc)


@app.exception_handler(UnsupportedMediaTypeError)
async def unsupported_media_type_handler(request: Request, exc: UnsupportedMediaTypeError):
    return _error(request, status.HTTP_415_UNSUPPORTED_MEDIA_TYPE, exc)


@app.exception_handler(ConversionFailedError)
async def conversion_failed_handler(request: Request, exc: ConversionFailedError):
    return _error(request, status.HTTP_422_UNPROCESSABLE_ENTITY, exc)


@app.exception_handler(UnsupportedConversionError)
async def unsupported_conversion_handler(request: Request, exc: UnsupportedConversionError):
    return _error(request, status.HTTP_415_UNSUPPORTED_MEDIA_TYPE, exc)


@app.exception_handler(StorageError)
async def storage_error_handler(request: Request, exc: StorageError):
    return _error(request, status.HTTP_500_INTERNAL_SERVER_ERROR, exc)


@app.exception_handler(FragmentError)
async def fragment_exception_handler(request: Request, exc: FragmentError):
    return _error(request, status.HTTP_500_INTERNAL_SERVER_ERROR, exc)


app.include_router(fragment_router)


@app.get("/")
async def root():
    """
    Root endpoint for health check.
    """
    return create_success_response({"service": SERVICE_NAME, "version": SERVICE_VERSION})


@app.get("/health")
async def health_check():
    """
    Health check endpoint for Docker healthcheck.
    Returns 200 if service is alive.
    """
    return {"status": "healthy", "service": SERVICE_NAME}


def main() -> None:
    """
    Start the FastAPI server with uvicorn.
    """
    uvicorn.run(
        "fragments.main:app",
        host=config.HOST,
        port=config.PORT
    )


if __name__ == "__main__":
    main()
