"""Logging and tracing setup for the ticketing core."""

from __future__ import annotations

import logging
from logging.config import dictConfig

from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor

from apps.ticketing.core.config import Settings


def configure_logging(settings: Settings) -> logging.Logger:
    """Route ticketing and SQLAlchemy logs to stderr and return the application logger."""

    level = settings.log_level.upper()
    dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {"default": {"format": settings.log_format}},
            "handlers": {
                "default": {"class": "logging.StreamHandler", "formatter": "default"},
            },
            "root": {"handlers": ["default"], "level": level},
            "loggers": {
                "apps.ticketing": {"level": level},
                "sqlalchemy.engine": {"level": "WARNING"},
            },
        }
    )

    logger = logging.getLogger(settings.app_name)
    logger.setLevel(level)
    return logger


def init_tracer(settings: Settings) -> TracerProvider | None:
    """Install an OTLP-exporting tracer provider when tracing is enabled.

    Endpoint and headers come from the standard ``OTEL_EXPORTER_OTLP_*``
    environment variables read by the exporter itself.
    """

    if not settings.otel_enabled or isinstance(trace.get_tracer_provider(), TracerProvider):
        return None

    resource = Resource.create(
        {
            "service.name": settings.otel_service_name,
            "deployment.environment": settings.environment,
        }
    )
    provider = TracerProvider(resource=resource)
    provider.add_span_processor(BatchSpanProcessor(OTLPSpanExporter()))
    trace.set_tracer_provider(provider)
    return provider


def shutdown_tracer(provider: TracerProvider | None) -> None:
    if provider is not None:
        provider.shutdown()
