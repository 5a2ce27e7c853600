import prometheus_client
from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, generate_latest

# Guard against duplicated metric registration when the module is imported
# multiple times (for example, when running uvicorn with the reloader).
REQUEST_COUNT = getattr(prometheus_client, "lubri_REQUEST_COUNT", None)
REQUEST_LATENCY = getattr(prometheus_client, "lubri_REQUEST_LATENCY", None)
ENTITLEMENT_DECISIONS = getattr(prometheus_client, "lubri_ENTITLEMENT_DECISIONS", None)
USAGE_INCREMENTS = getattr(prometheus_client, "lubri_USAGE_INCREMENTS", None)
LIFECYCLE_TRANSITIONS = getattr(prometheus_client, "lubri_LIFECYCLE_TRANSITIONS", None)
STORE_ERRORS = getattr(prometheus_client, "lubri_STORE_ERRORS", None)
STORE_OPERATION_DURATION = getattr(prometheus_client, "lubri_STORE_OPERATION_DURATION", None)

if REQUEST_COUNT is None:
    # HTTP Metrics
    REQUEST_COUNT = Counter(
        "http_requests_total", "Total HTTP requests", ["method", "endpoint", "http_status"]
    )
    REQUEST_LATENCY = Histogram(
        "http_request_latency_seconds", "HTTP request latency in seconds", ["method", "endpoint"]
    )

    # Entitlement Metrics
    ENTITLEMENT_DECISIONS = Counter(
        "entitlement_decisions_total",
        "Total entitlement validations",
        ["action", "result", "error_kind"],  # result: allowed/denied
    )
    USAGE_INCREMENTS = Counter(
        "usage_increments_total",
        "Total monthly service counter increments",
        ["result"],  # result: success/denied/conflict_exhausted
    )
    LIFECYCLE_TRANSITIONS = Counter(
        "lifecycle_transitions_total", "Total subscription lifecycle operations", ["operation"]
    )

    # Store Metrics
    STORE_ERRORS = Counter(
        "store_errors_total", "Total tenant store failures", ["operation", "error_type"]
    )
    STORE_OPERATION_DURATION = Histogram(
        "store_operation_duration_seconds", "Tenant store call duration in seconds", ["operation"]
    )

    prometheus_client.lubri_REQUEST_COUNT = REQUEST_COUNT  # type: ignore[attr-defined]
    prometheus_client.lubri_REQUEST_LATENCY = REQUEST_LATENCY  # type: ignore[attr-defined]
    prometheus_client.lubri_ENTITLEMENT_DECISIONS = ENTITLEMENT_DECISIONS  # type: ignore[attr-defined]
    prometheus_client.lubri_USAGE_INCREMENTS = USAGE_INCREMENTS  # type: ignore[attr-defined]
    prometheus_client.lubri_LIFECYCLE_TRANSITIONS = LIFECYCLE_TRANSITIONS  # type: ignore[attr-defined]
    prometheus_client.lubri_STORE_ERRORS = STORE_ERRORS  # type: ignore[attr-defined]
    prometheus_client.lubri_STORE_OPERATION_DURATION = STORE_OPERATION_DURATION  # type: ignore[attr-defined]


def metrics_response():
    data = generate_latest()
    return data, CONTENT_TYPE_LATEST
