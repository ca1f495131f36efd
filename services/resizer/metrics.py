"""
Prometheus metrics exposed on /metrics.
"""
from prometheus_client import CONTENT_TYPE_LATEST, REGISTRY, Counter, Histogram, generate_latest

# outcome: redirected, fallback, rejected, bad_request
REQUESTS = Counter(
    "resizer_requests_total",
    "Image requests by endpoint and outcome",
    ["endpoint", "outcome"],
)

TRANSFORM_SECONDS = Histogram(
    "resizer_transform_seconds",
    "Time spent in the pixel pipeline",
    ["endpoint"],
)


def render_latest() -> bytes:
    return generate_latest(REGISTRY)


__all__ = ["CONTENT_TYPE_LATEST", "REQUESTS", "TRANSFORM_SECONDS", "render_latest"]
