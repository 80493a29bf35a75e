import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool
from starlette.exceptions import HTTPException as StarletteHTTPException

from .logging_config import setup_logging
from .repositories import Repository, StoreError, get_repository
from .routers import todos as todos_router
from .schemas import HealthResponse
from .settings import Settings, get_settings
from .utils import error_envelope

logger = logging.getLogger(__name__)

openapi_tags = [
    {"name": "health", "description": "Service liveness endpoint."},
    {"name": "todos", "description": "CRUD operations for Todo items."},
]


def _register_exception_handlers(app: FastAPI) -> None:
    """
    Map every failure to the ``{"success": false, "error": ...}`` envelope.
    """

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content=error_envelope(str(exc.detail)),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(StoreError)
    async def store_error_handler(request: Request, exc: StoreError) -> JSONResponse:
        logger.error("Store call failed for %s %s: %s", request.method, request.url.path, exc)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=error_envelope(str(exc)),
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled error for %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=error_envelope(str(exc)),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        """
        Return the failure envelope for request validation errors, with the
        pydantic error details attached under ``detail``.
        """
        content = error_envelope("Request validation failed")
        content["detail"] = jsonable_encoder(exc.errors())
        return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content=content)


# PUBLIC_INTERFACE
def create_app(settings: Optional[Settings] = None, repository: Optional[Repository] = None) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        settings: Settings to use; read from the environment when omitted.
        repository: Store to serve from. When omitted, one is built from
            settings during startup.

    The repository's ``initialize`` runs in the lifespan hook, so requests are
    only accepted once the todos table exists and is active. A failure there
    aborts startup.
    """
    settings = settings or get_settings()
    setup_logging(settings.log_level)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        if getattr(app.state, "repository", None) is None:
            app.state.repository = get_repository(settings)
        try:
            await run_in_threadpool(app.state.repository.initialize)
        except Exception:
            logger.exception("Store initialization failed")
            raise
        logger.info("Todo API ready (backend: %s)", settings.persistence_backend)
        yield

    app = FastAPI(
        title="Todo API",
        description="CRUD service for todos stored in a DynamoDB table.",
        version="0.1.0",
        openapi_tags=openapi_tags,
        lifespan=lifespan,
    )
    app.state.repository = repository

    allow_all = (settings.cors_allow_origins == ["*"]) or (len(settings.cors_allow_origins) == 0)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if allow_all else settings.cors_allow_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    _register_exception_handlers(app)

    # PUBLIC_INTERFACE
    @app.get("/health", response_model=HealthResponse, summary="Health Check", tags=["health"])
    def health_check():
        """
        Liveness probe. Never touches the store.
        """
        return {"status": "healthy", "message": "Todo API is running"}

    app.include_router(todos_router.router)
    return app


app = create_app()
