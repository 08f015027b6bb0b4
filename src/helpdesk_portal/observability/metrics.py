from __future__ import annotations

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    REGISTRY,
    Counter,
    Histogram,
    generate_latest,
)

tickets_built_total = Counter(
    "tickets_built_total",
    "Number of ticket payloads built from form submissions.",
    labelnames=("request_type",),
)
custom_fields_dropped_total = Counter(
    "custom_fields_dropped_total",
    "Number of form values dropped from customFields.",
    labelnames=("reason",),
)
conversations_created_total = Counter(
    "conversations_created_total",
    "Number of conversations created in the helpdesk.",
)
ticketing_errors_total = Counter(
    "ticketing_errors_total",
    "Number of failed ticket submissions.",
    labelnames=("kind",),
)

submit_seconds = Histogram(
    "submit_seconds",
    "Seconds spent submitting a form end-to-end.",
)


def render_latest(*, registry=REGISTRY) -> tuple[bytes, str]:
    return generate_latest(registry), CONTENT_TYPE_LATEST
