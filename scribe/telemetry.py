"""OpenTelemetry wiring: Prometheus metrics, console tracing, instrumentation.

Telemetry is opt-in through ``ENABLE_TELEMETRY`` and is never set up under pytest.
"""

import os
import sys

from fastapi import FastAPI
from opentelemetry import metrics, trace
from opentelemetry.exporter.prometheus import PrometheusMetricReader
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.instrumentation.sqlalchemy import SQLAlchemyInstrumentor
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter
from prometheus_client import start_http_server

from .logging_config import get_logger

logger = get_logger(__name__)

DEFAULT_METRICS_PORT = 8080
METRICS_PORT_ATTEMPTS = 2


def telemetry_enabled() -> bool:
    if "pytest" in sys.modules or os.getenv("TESTING"):
        return False
    return bool(os.getenv("ENABLE_TELEMETRY"))


def _start_metrics_server() -> int:
    port = int(os.getenv("METRICS_PORT", str(DEFAULT_METRICS_PORT)))
    for attempt in range(METRICS_PORT_ATTEMPTS):
        try:
            start_http_server(port + attempt)
        except OSError:
            logger.warning("Metrics port busy", port=port + attempt)
            continue
        return port + attempt
    raise OSError(f"No free metrics port from {port}")


def setup_telemetry(app: FastAPI) -> None:
    """Export deletion and HTTP metrics and trace requests and commits."""
    if not telemetry_enabled():
        return

    try:
        metrics.set_meter_provider(
            MeterProvider(metric_readers=[PrometheusMetricReader()])
        )
        port = _start_metrics_server()

        tracer_provider = TracerProvider()
        tracer_provider.add_span_processor(BatchSpanProcessor(ConsoleSpanExporter()))
        trace.set_tracer_provider(tracer_provider)

        FastAPIInstrumentor.instrument_app(app)
        SQLAlchemyInstrumentor().instrument()
    except Exception as e:
        # The service keeps running without telemetry
        logger.error("Failed to set up OpenTelemetry", error=str(e), exc_info=True)
        return

    logger.info("OpenTelemetry enabled", metrics_port=port)
