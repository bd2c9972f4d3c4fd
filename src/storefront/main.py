"""FastAPI application entrypoint."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from storefront.api.middleware import RequestIDMiddleware, RequestLoggingMiddleware
from storefront.api.router import api_router
from storefront.config import settings
from storefront.database import close_db
from storefront.logging import setup_logging
from storefront.services.codes import create_code_store
from storefront.services.errors import InvalidInputError, ServiceError, ServiceResult

setup_logging()

logger = logging.getLogger(__name__)

# Initialize Sentry for error tracking
if settings.sentry_dsn:
    import sentry_sdk

    sentry_sdk.init(
        dsn=settings.sentry_dsn,
        environment=settings.environment,
        traces_sample_rate=0.1 if settings.is_production else 1.0,
    )
    logger.info("Sentry initialized")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler.

    The code store is a process-wide handle shared by all requests.
    """
    app.state.code_store = create_code_store()
    yield
    await app.state.code_store.close()
    await close_db()


app = FastAPI(
    title="Storefront API",
    description="E-commerce backend: accounts, authentication and addresses",
    version="0.1.0",
    lifespan=lifespan,
    docs_url="/api/docs" if settings.debug_enabled else None,
    redoc_url="/api/redoc" if settings.debug_enabled else None,
    openapi_url="/api/openapi.json" if settings.debug_enabled else None,
)


@app.exception_handler(ServiceError)
async def service_error_handler(_request: Request, exc: ServiceError) -> JSONResponse:
    """Render service failures as the uniform result body."""
    return JSONResponse(status_code=exc.status_code, content=exc.to_result().to_dict())


@app.exception_handler(RequestValidationError)
async def validation_error_handler(
    _request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Malformed request bodies get the same 400 body as service-level input errors."""
    logger.debug(f"Request validation failed: {exc.errors()!r}")
    if any(error.get("type") == "missing" for error in exc.errors()):
        error = InvalidInputError("All fields are required")
    else:
        error = InvalidInputError()
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=error.to_result().to_dict(),
    )


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(_request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Render 401/404/429 and friends in the result shape, keeping their headers."""
    return JSONResponse(
        status_code=exc.status_code,
        content=ServiceResult(success=False, message=str(exc.detail)).to_dict(),
        headers=exc.headers,
    )


app.add_middleware(RequestLoggingMiddleware)  # type: ignore[arg-type]
# Request ID middleware runs first so the logging middleware sees the ID
app.add_middleware(RequestIDMiddleware)  # type: ignore[arg-type]

app.add_middleware(
    CORSMiddleware,  # type: ignore[arg-type]
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type", "Accept", "X-Request-ID"],
    expose_headers=["X-Request-ID"],
)

app.include_router(api_router, prefix="/api")


if __name__ == "__main__":
    import uvicorn

    from storefront.logging import get_uvicorn_log_config

    uvicorn.run(
        "storefront.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.is_development,
        log_config=get_uvicorn_log_config(),
    )
