from __future__ import annotations

import os

from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.flask import FlaskInstrumentor
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter

from .config import parse_bool


def configure_tracing(app) -> bool:
    if not parse_bool(os.environ.get("INNERCIRCLE_OTEL_ENABLED", "false")):
        return False

    service_name = os.environ.get("INNERCIRCLE_OTEL_SERVICE_NAME", "innercircle-server")
    exporter_endpoint = os.environ.get("OTEL_EXPORTER_OTLP_ENDPOINT", "")

    provider = TracerProvider(resource=Resource.create({"service.name": service_name}))
    if exporter_endpoint:
        exporter = OTLPSpanExporter(endpoint=exporter_endpoint, insecure=True)
    else:
        exporter = ConsoleSpanExporter()
    provider.add_span_processor(BatchSpanProcessor(exporter))
    trace.set_tracer_provider(provider)

    # Gate rejections and downloads show up as spans of the Flask request.
    FlaskInstrumentor().instrument_app(app, excluded_urls="health,metrics")
    return True
