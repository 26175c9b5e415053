"""Observability setup for the chat relay (OTEL and Prometheus)."""

from __future__ import annotations

import asyncio
import json
import logging
import logging.config
import os
from pathlib import Path
from typing import Any

from fastapi import FastAPI

logger = logging.getLogger(__name__)

_TRUTHY = {"1", "true", "yes"}


def setup_logging(level: str = "INFO") -> None:
    """Load JSON logging config if present, otherwise configure the root logger."""

    config_path = Path.cwd() / "observability" / "logging.json"
    if config_path.exists():
        try:
            with config_path.open("r", encoding="utf-8") as fh:
                cfg = json.load(fh)
            logging.config.dictConfig(cfg)
            return
        except (OSError, ValueError) as exc:
            logging.getLogger(__name__).warning("Ignoring broken %s: %s", config_path, exc)
    logging.basicConfig(level=level.upper(), format="%(asctime)s %(levelname)s %(name)s %(message)s")


def log_unhandled(loop: asyncio.AbstractEventLoop, context: dict[str, Any]) -> None:
    """Event loop exception handler: log stray task failures instead of dying."""

    exc = context.get("exception")
    message = context.get("message", "Unhandled exception in event loop")
    if exc is not None:
        logger.error("%s", message, exc_info=(type(exc), exc, exc.__traceback__))
    else:
        logger.error("%s: %s", message, context)


def setup_observability(app: FastAPI, *, service_name: str) -> None:
    if os.environ.get("ENABLE_OTEL", "false").lower() in _TRUTHY:
        try:
            _enable_tracing(app, service_name)
        except ImportError as exc:
            logger.warning("Tracing requested but OpenTelemetry is unavailable: %s", exc)
    if os.environ.get("ENABLE_METRICS", "false").lower() in _TRUTHY:
        try:
            _enable_metrics(app)
        except ImportError as exc:
            logger.warning("Metrics requested but instrumentator is unavailable: %s", exc)


def _enable_tracing(app: FastAPI, service_name: str) -> None:
    from opentelemetry import trace
    from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
    from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
    from opentelemetry.sdk.resources import Resource
    from opentelemetry.sdk.trace import TracerProvider
    from opentelemetry.sdk.trace.export import BatchSpanProcessor

    endpoint = os.environ.get("OTEL_EXPORTER_OTLP_ENDPOINT") or "http://localhost:4318"
    provider = TracerProvider(resource=Resource.create({"service.name": service_name}))
    provider.add_span_processor(BatchSpanProcessor(OTLPSpanExporter(endpoint=f"{endpoint}/v1/traces")))
    trace.set_tracer_provider(provider)
    FastAPIInstrumentor.instrument_app(app)


def _enable_metrics(app: FastAPI) -> None:
    from prometheus_fastapi_instrumentator import Instrumentator

    Instrumentator().instrument(app).expose(app)
