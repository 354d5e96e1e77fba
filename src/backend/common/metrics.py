# SPDX-FileCopyrightText: 2025 robot-visual-perception
#
# SPDX-License-Identifier: MIT
import logging
from typing import Optional

import os
from opentelemetry import metrics
from opentelemetry.exporter.otlp.proto.http.metric_exporter import OTLPMetricExporter
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.metrics.export import PeriodicExportingMetricReader
from opentelemetry.sdk.resources import Resource
from opentelemetry.semconv.resource import ResourceAttributes


_configured = False
_meter: Optional[metrics.Meter] = None


def configure_metrics(
    service_name: str,
    service_version: str,
    environment: str | None = None,
) -> metrics.Meter:
    """
    Configure OpenTelemetry metrics and return a Meter instance.

    This sets up:
      - MeterProvider with OTLP HTTP exporter (if an endpoint is configured)
      - Respect for ENVIRONMENT / OTEL_EXPORTER_OTLP* env vars

    Args:
        service_name: Name of the service (e.g., "navigator")
        service_version: Version of the service
        environment: Deployment environment (e.g., "development", "production")
    """
    global _configured, _meter
    if _configured and _meter is not None:
        return _meter

    env = (
        os.getenv("ENVIRONMENT", "development") if environment is None else environment
    )

    resource = Resource.create(
        {
            ResourceAttributes.SERVICE_NAME: service_name,
            ResourceAttributes.SERVICE_VERSION: service_version,
            ResourceAttributes.DEPLOYMENT_ENVIRONMENT: env,
        }
    )

    otlp_endpoint = os.getenv("OTEL_EXPORTER_OTLP_METRICS_ENDPOINT") or os.getenv(
        "OTEL_EXPORTER_OTLP_ENDPOINT"
    )

    meter_provider = MeterProvider(resource=resource)
    if otlp_endpoint:
        try:
            reader = PeriodicExportingMetricReader(
                OTLPMetricExporter(endpoint=otlp_endpoint),
                export_interval_millis=5000,
            )
            meter_provider = MeterProvider(resource=resource, metric_readers=[reader])
        except Exception as err:  # pragma: no cover
            logging.getLogger(__name__).warning(
                "OTLP metrics exporter setup failed; metrics disabled",
                extra={"error": str(err)},
            )

    metrics.set_meter_provider(meter_provider)
    _meter = metrics.get_meter(service_name, service_version)
    _configured = True

    return _meter


def get_meter() -> metrics.Meter:
    """Return the configured Meter, or the API proxy meter before configuration.

    Instruments created from the proxy meter are no-ops until a provider is
    installed, so instrumentation never depends on metrics being enabled.
    """
    if _meter is None:
        return metrics.get_meter("navigator")
    return _meter


def get_detection_duration() -> metrics.Histogram:
    return get_meter().create_histogram(
        "navigator.detection.duration",
        unit="s",
        description="Detector inference time per frame, excluding the fallback classifier",
    )


def get_frame_duration() -> metrics.Histogram:
    return get_meter().create_histogram(
        "navigator.frame.duration",
        unit="s",
        description="Time from frame acceptance to state publication",
    )


def get_dropped_frames() -> metrics.Counter:
    return get_meter().create_counter(
        "navigator.frames.dropped",
        description="Frames dropped because another frame was in flight",
    )


def get_published_frames() -> metrics.Counter:
    return get_meter().create_counter(
        "navigator.frames.published",
        description="Frames that completed and published state",
    )


def get_fallback_classifications() -> metrics.Counter:
    return get_meter().create_counter(
        "navigator.fallback.classifications",
        description="Fallback classifier invocations",
    )
