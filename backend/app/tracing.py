"""OpenTelemetry tracing bootstrap – instruments FastAPI, SQLAlchemy, Redis, ES."""

import logging

from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.elasticsearch import ElasticsearchInstrumentor
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.instrumentation.redis import RedisInstrumentor
from opentelemetry.instrumentation.sqlalchemy import SQLAlchemyInstrumentor
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor

from app.config import get_settings

logger = logging.getLogger(__name__)


def setup_tracing():
    """Export spans over OTLP and instrument the data-store clients.

    Returns the FastAPI instrumentor for the caller to attach to its app,
    or ``None`` when tracing is disabled or could not be set up.
    """
    settings = get_settings()
    if not settings.tracing_enabled:
        logger.info("Tracing disabled")
        return None

    try:
        resource = Resource.create({"service.name": settings.service_name})
        provider = TracerProvider(resource=resource)
        exporter = OTLPSpanExporter(endpoint=settings.otlp_endpoint, insecure=True)
        provider.add_span_processor(BatchSpanProcessor(exporter))
        trace.set_tracer_provider(provider)

        SQLAlchemyInstrumentor().instrument()
        RedisInstrumentor().instrument()
        ElasticsearchInstrumentor().instrument()
    except Exception as exc:
        logger.warning("Tracing setup failed (non-fatal): %s", exc)
        return None

    logger.info("OpenTelemetry tracing initialised → %s", settings.otlp_endpoint)
    return FastAPIInstrumentor
