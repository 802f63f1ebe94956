"""
Prometheus metrics registration and helpers.

Exports:
- observe_request(...): record HTTP request metrics
- observe_decimation(...): record decimation runs and point counts
- metrics_latest(): return text exposition from correct registry (handles multiprocess)
- CONTENT_TYPE_LATEST: correct Prometheus content type
"""

import os
from prometheus_client import Counter, Histogram, CollectorRegistry, generate_latest, CONTENT_TYPE_LATEST
from prometheus_client import multiprocess


REQUEST_COUNTER = Counter(
    'bp_http_requests_total', 'Total HTTP requests', ['endpoint', 'status']
)

REQUEST_LATENCY = Histogram(
    'bp_http_request_latency_seconds', 'HTTP request latency seconds', ['endpoint']
)

DECIMATION_RUNS = Counter(
    'bp_decimation_runs_total', 'Total decimation runs', ['algorithm']
)

DECIMATION_LATENCY = Histogram(
    'bp_decimation_latency_seconds', 'Decimation latency seconds', ['algorithm']
)

_POINT_BUCKETS = [10, 100, 500, 1000, 5000, 10000, 50000, 100000]

DECIMATION_INPUT_POINTS = Histogram(
    'bp_decimation_input_points', 'Points handed to the decimator', buckets=_POINT_BUCKETS
)

DECIMATION_OUTPUT_POINTS = Histogram(
    'bp_decimation_output_points', 'Points returned by the decimator', buckets=_POINT_BUCKETS
)


def observe_request(endpoint: str, status: int, latency_seconds: float) -> None:
    REQUEST_COUNTER.labels(endpoint=endpoint, status=str(status)).inc()
    REQUEST_LATENCY.labels(endpoint=endpoint).observe(latency_seconds)


def observe_decimation(algorithm: str, input_points: int, output_points: int, latency_seconds: float) -> None:
    DECIMATION_RUNS.labels(algorithm=algorithm).inc()
    DECIMATION_LATENCY.labels(algorithm=algorithm).observe(latency_seconds)
    DECIMATION_INPUT_POINTS.observe(input_points)
    DECIMATION_OUTPUT_POINTS.observe(output_points)


def metrics_latest() -> bytes:
    """Return the Prometheus text exposition, multiprocess-aware if configured."""
    prom_mp_dir = os.getenv('PROMETHEUS_MULTIPROC_DIR')
    if prom_mp_dir:
        registry = CollectorRegistry()
        multiprocess.MultiProcessCollector(registry)
        return generate_latest(registry)
    # Default registry
    return generate_latest()
