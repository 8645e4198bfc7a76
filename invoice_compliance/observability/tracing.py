# ==== OPENTELEMETRY TRACING CONFIGURATION ==== #

"""
OpenTelemetry tracing configuration.

Services create spans through `get_tracer`. Without an OTLP endpoint the
global no-op provider stays in place, so local runs and tests need no
collector.
"""

import os
from typing import Any, Dict

from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor


# ==== TRACING INITIALIZATION ==== #


def init_tracing(service_name: str) -> bool:
    """
    Initialize OpenTelemetry tracing with OTLP export.

    Args:
        service_name (str): Name of the service for tracing identification

    Returns:
        bool: True if a tracer provider was installed
    """
    endpoint = os.getenv("OTEL_EXPORTER_OTLP_ENDPOINT")

    # ⚠️ Allow local runs without an APM collector
    if not endpoint:
        return False

    resource_attrs = _parse_resource_attributes(
        os.getenv("OTEL_RESOURCE_ATTRIBUTES", "")
    )
    resource_attrs["service.name"] = os.getenv("OTEL_SERVICE_NAME", service_name)

    provider = TracerProvider(resource=Resource.create(resource_attrs))
    exporter = OTLPSpanExporter(
        endpoint=endpoint,
        headers=_parse_headers(os.getenv("OTEL_EXPORTER_OTLP_HEADERS"))
    )
    provider.add_span_processor(BatchSpanProcessor(exporter))
    trace.set_tracer_provider(provider)
    return True


def _parse_headers(headers_str: str | None) -> Dict[str, str]:
    """Parse OTLP headers from environment variable.

    Args:
        headers_str: Comma-separated key=value pairs

    Returns:
        Dictionary of headers
    """
    headers = {}
    if not headers_str:
        return headers

    for part in headers_str.split(","):
        if "=" in part:
            key, value = part.split("=", 1)
            headers[key.strip()] = value.strip()

    return headers


def _parse_resource_attributes(attrs_str: str) -> Dict[str, Any]:
    attrs = {}
    if not attrs_str:
        return attrs

    for part in filter(None, map(str.strip, attrs_str.split(","))):
        if "=" in part:
            key, value = part.split("=", 1)
            attrs[key] = value

    return attrs


def get_tracer(name: str) -> trace.Tracer:
    """Get a tracer instance for the given module."""
    return trace.get_tracer(name)
