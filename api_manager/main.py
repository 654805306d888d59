"""Main FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager
from typing import Optional

import httpx
from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from starlette.exceptions import HTTPException

from api_manager import __version__
from api_manager.api.dependencies import get_encryption_service
from api_manager.api.external_apis import router as external_apis_router
from api_manager.api.providers import router as providers_router
from api_manager.api.proxy import router as proxy_router
from api_manager.config import Settings, settings as default_settings
from api_manager.database.database import Database, get_db
from api_manager.errors import APIManagerError, ConfigurationError
from api_manager.models import CallLog, ExternalAPI, Provider, ProviderEndpoint
from api_manager.services.dispatcher import Dispatcher
from api_manager.services.encryption_service import EncryptionService

logger = logging.getLogger(__name__)


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    database: str
    encryption: str
    version: str = __version__
    message: Optional[str] = None


class StatsResponse(BaseModel):
    """System statistics response."""

    providers_count: int
    active_providers_count: int
    endpoints_count: int
    external_apis_count: int
    call_logs_count: int
    failed_calls_count: int


def _error_response(status_code: int, payload: dict) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=payload)


def _register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(APIManagerError)
    async def api_manager_error_handler(request: Request, exc: APIManagerError):
        if exc.status_code >= 500:
            logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
        return _error_response(exc.status_code, exc.to_payload())

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException):
        return _error_response(exc.status_code, {"success": False, "message": str(exc.detail)})

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        errors = [
            {
                "field": ".".join(str(part) for part in error.get("loc", ()) if part != "body"),
                "message": error.get("msg", ""),
            }
            for error in exc.errors()
        ]
        return _error_response(400, {"success": False, "message": "Validation failed", "errors": errors})

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.exception(f"Unhandled error on {request.method} {request.url.path}: {exc}")
        return _error_response(500, {"success": False, "message": "Internal server error"})


def create_app(
    settings: Optional[Settings] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> FastAPI:
    """Build the application.

    Args:
        settings: Settings to use; defaults to the environment settings.
        transport: Optional httpx transport for the outbound dispatcher.

    Returns:
        Configured FastAPI application.
    """
    settings = settings or default_settings

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logging.basicConfig(
            level=settings.log_level.upper(),
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        )
        try:
            encryption_service = EncryptionService(settings.encryption_key)
        except ConfigurationError as e:
            logger.error(e.message)
            raise SystemExit(1)

        database = Database(settings.database_url)
        database.init_db(encryption_service)

        dispatcher = Dispatcher(transport=transport, user_agent=settings.proxy_user_agent)
        await dispatcher.open()

        app.state.settings = settings
        app.state.encryption_service = encryption_service
        app.state.database = database
        app.state.dispatcher = dispatcher
        logger.info("API Manager started")
        try:
            yield
        finally:
            await dispatcher.close()
            database.dispose()
            logger.info("API Manager stopped")

    app = FastAPI(
        title="API Manager",
        description="Registry and proxy for third-party HTTP APIs",
        version=__version__,
        lifespan=lifespan,
    )

    # Configure CORS
    origins = [origin.strip() for origin in settings.cors_origins.split(",") if origin.strip()]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins or ["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    _register_exception_handlers(app)

    # Include routers
    app.include_router(providers_router)
    app.include_router(external_apis_router)
    app.include_router(proxy_router)

    @app.get("/")
    async def root():
        return {"message": "API Manager", "version": __version__}

    @app.get("/api/health", response_model=HealthResponse)
    async def health_check(
        db: Session = Depends(get_db),
        encryption_service: EncryptionService = Depends(get_encryption_service),
    ):
        """Health check endpoint.

        Checks database connectivity and encryption key validity.
        """
        health_status = {
            "status": "healthy",
            "database": "connected",
            "encryption": "valid",
        }

        try:
            db.execute(text("SELECT 1"))
        except SQLAlchemyError as e:
            health_status["status"] = "unhealthy"
            health_status["database"] = "disconnected"
            health_status["message"] = str(e)
            return HealthResponse(**health_status)

        if encryption_service.decrypt(encryption_service.encrypt("test")) != "test":
            health_status["encryption"] = "invalid"
            health_status["status"] = "unhealthy"
            health_status["message"] = "Encryption service validation failed"

        return HealthResponse(**health_status)

    @app.get("/api/stats", response_model=StatsResponse)
    async def get_stats(db: Session = Depends(get_db)):
        """Get system statistics.

        Returns counts of providers, endpoints, external APIs and call logs.
        """
        return StatsResponse(
            providers_count=db.query(Provider).count(),
            active_providers_count=db.query(Provider).filter(Provider.is_active == True).count(),  # noqa: E712
            endpoints_count=db.query(ProviderEndpoint).count(),
            external_apis_count=db.query(ExternalAPI).count(),
            call_logs_count=db.query(CallLog).count(),
            failed_calls_count=db.query(CallLog).filter(CallLog.success == False).count(),  # noqa: E712
        )

    return app


app = create_app()
