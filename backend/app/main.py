"""FastAPI application factory, error mapping and startup hooks."""

import logging

from contextlib import asynccontextmanager
from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from app.admin_routes import public_router as admin_auth_router
from app.admin_routes import router as admin_router
from app.database import init_db
from app.errors import ServiceError
from app.es_service import ensure_indexes
from app.kafka_producer import flush as kafka_flush
from app.routes import router
from app.tracing import setup_tracing

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Run startup tasks before the app begins serving requests."""
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )

    # 1. Initialise database tables
    logger.info("Initialising database …")
    init_db()

    # 2. Ensure Elasticsearch indexes exist
    logger.info("Ensuring Elasticsearch indexes …")
    try:
        ensure_indexes()
    except Exception as exc:
        logger.warning("ES index setup deferred: %s", exc)

    # 3. Set up OpenTelemetry tracing
    logger.info("Configuring tracing …")
    fastapi_instrumentor = setup_tracing()
    if fastapi_instrumentor is not None:
        fastapi_instrumentor.instrument_app(app)

    logger.info("RateMyProfessor API ready")
    yield

    # Shutdown
    try:
        kafka_flush()
    except Exception as exc:
        logger.warning("Kafka flush on shutdown failed: %s", exc)
    logger.info("RateMyProfessor API shutdown complete")


async def service_error_handler(request: Request, exc: ServiceError):
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


async def database_error_handler(request: Request, exc: SQLAlchemyError):
    logger.exception("Database error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": "Internal server error"},
    )


def create_app() -> FastAPI:
    app = FastAPI(
        title="RateMyProfessor API",
        description="Faculties, subjects, professors and anonymous professor ratings",
        version="1.0.0",
        lifespan=lifespan,
    )

    # CORS – allow the web client & local dev
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(ServiceError, service_error_handler)
    app.add_exception_handler(SQLAlchemyError, database_error_handler)

    app.include_router(router, prefix="/api/v1")
    app.include_router(admin_auth_router, prefix="/api/v1")
    app.include_router(admin_router, prefix="/api/v1")

    return app


app = create_app()
