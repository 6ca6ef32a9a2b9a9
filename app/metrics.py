from prometheus_client import Counter, Histogram

REQUEST_COUNT = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["method", "path", "status"],
)
REQUEST_LATENCY = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency in seconds",
    ["method", "path", "status"],
)
REQUEST_ERRORS = Counter(
    "http_request_errors_total",
    "HTTP requests that ended in a server error",
    ["method", "path", "status"],
)
WEBHOOK_EVENTS = Counter(
    "subscription_webhook_events_total",
    "Provider webhook events by type and outcome",
    ["event_type", "outcome"],
)
