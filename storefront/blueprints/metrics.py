"""
Prometheus metrics: HTTP request instrumentation and order workflow counters.

Scraped from ``/metrics``. The endpoint is unauthenticated; expose it to the
monitoring network only.
"""
from flask import Blueprint, Response, request, g
from prometheus_client import Counter, Histogram, Gauge, generate_latest, CollectorRegistry, CONTENT_TYPE_LATEST
from prometheus_client import multiprocess, REGISTRY
import time
import os

metrics_bp = Blueprint('metrics', __name__)

# Gunicorn workers share samples through PROMETHEUS_MULTIPROC_DIR
MULTIPROCESS_MODE = os.environ.get('PROMETHEUS_MULTIPROC_DIR') is not None

if MULTIPROCESS_MODE:
    registry = CollectorRegistry()
    multiprocess.MultiProcessCollector(registry)
else:
    registry = REGISTRY

# Metrics register on the default registry unless samples are collected per process
_metric_registry = None if MULTIPROCESS_MODE else registry

LATENCY_BUCKETS = (0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0)

http_requests_total = Counter(
    'http_requests_total',
    'HTTP requests served, by route and status',
    ['method', 'endpoint', 'http_status'],
    registry=_metric_registry
)

http_request_duration_seconds = Histogram(
    'http_request_duration_seconds',
    'Time spent serving a request',
    ['method', 'endpoint'],
    registry=_metric_registry,
    buckets=LATENCY_BUCKETS
)

http_requests_in_flight = Gauge(
    'http_requests_in_flight',
    'Requests currently being served',
    registry=_metric_registry
)

orders_created_total = Counter(
    'orders_created_total',
    'Orders placed',
    registry=_metric_registry
)

orders_rejected_total = Counter(
    'orders_rejected_total',
    'Orders refused for insufficient stock',
    registry=_metric_registry
)

orders_cancelled_total = Counter(
    'orders_cancelled_total',
    'Orders cancelled and returned to stock',
    registry=_metric_registry
)


def setup_metrics_instrumentation(app):
    """Time every request of ``app`` and count it by endpoint and status."""

    @app.before_request
    def start_request_timer():
        g.request_started_at = time.perf_counter()
        http_requests_in_flight.inc()

    @app.after_request
    def observe_request(response):
        started_at = g.pop('request_started_at', None)
        if started_at is None:
            return response

        # Unmatched URLs have no endpoint
        endpoint = request.endpoint or 'unknown'
        try:
            http_request_duration_seconds.labels(
                method=request.method, endpoint=endpoint
            ).observe(time.perf_counter() - started_at)
            http_requests_total.labels(
                method=request.method, endpoint=endpoint, http_status=response.status_code
            ).inc()
        except ValueError as e:
            app.logger.warning(f"Request metrics not recorded for {endpoint}: {e}")
        finally:
            http_requests_in_flight.dec()

        return response


@metrics_bp.route('/metrics')
def metrics():
    """Current samples in the Prometheus text exposition format."""
    return Response(generate_latest(registry), mimetype=CONTENT_TYPE_LATEST)
