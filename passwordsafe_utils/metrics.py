"""Metrics for passwordsafe-utils."""

from prometheus_client import Counter, Gauge, Histogram

# seconds; external APIs are slower than in-cluster services
DEFAULT_BUCKETS_EXTERNAL_API = (0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0)

passwordsafe_request = Counter(
    # Following naming convention (<prefix>_external_api_<component>_requests_total)
    "passwordsafe_external_api_requests_total",
    "Total number of Password Safe API requests",
    ["method", "verb"],
)

passwordsafe_request_errors = Counter(
    "passwordsafe_external_api_errors_total",
    "Total number of failed Password Safe API requests",
    ["method", "verb"],
)

passwordsafe_request_duration = Histogram(
    "passwordsafe_external_api_request_duration_seconds",
    "Password Safe API request duration in seconds",
    ["method", "verb"],
    buckets=DEFAULT_BUCKETS_EXTERNAL_API,
)

session_references = Gauge(
    "passwordsafe_session_references",
    "Number of callers currently holding the shared Password Safe session",
)

session_sign_in = Counter(
    "passwordsafe_session_sign_in_total",
    "Number of physical sign-in calls",
    ["result"],
)

session_sign_out = Counter(
    "passwordsafe_session_sign_out_total",
    "Number of physical sign-out calls",
    ["result"],
)
