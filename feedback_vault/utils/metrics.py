"""Prometheus Metrics - request, cipher and store counters for the feedback API

Self-Explanatory: Export custom metrics for the feedback service.
Why: 500s from a broken passphrase or an unreachable table should show up on a dashboard.
How: Prometheus client exports /metrics endpoint on the FastAPI app.

Metrics Categories:
1. Traffic: requests by method and status, request latency
2. Security: cipher failures by operation
3. Storage: store call errors by operation
"""

import time

import structlog
from prometheus_client import (
    Counter,
    Histogram,
    Info,
    generate_latest,
    REGISTRY,
)

logger = structlog.get_logger()

# ============================================================================
# TRAFFIC METRICS
# ============================================================================

feedback_requests_total = Counter(
    "feedback_requests_total",
    "Total feedback API requests",
    ["method", "status"],
)

feedback_request_duration_seconds = Histogram(
    "feedback_request_duration_seconds",
    "Feedback request latency including store calls",
    ["method"],
    buckets=[0.005, 0.01, 0.05, 0.1, 0.25, 0.5, 1, 2.5],
)

# ============================================================================
# SECURITY & STORAGE METRICS
# ============================================================================

cipher_failures_total = Counter(
    "feedback_cipher_failures_total",
    "Comment encryption/decryption failures",
    ["operation"],  # encrypt, decrypt
)

store_errors_total = Counter(
    "feedback_store_errors_total",
    "Failed calls to the feedback store",
    ["operation"],  # put, get, delete
)

# ============================================================================
# SYSTEM INFO
# ============================================================================

system_info = Info(
    "feedback_vault",
    "Feedback vault service information",
)

system_info.info({
    "version": "1.0.0",
    "cipher": "aes-256-cbc",
})

# ============================================================================
# HELPER FUNCTIONS
# ============================================================================


def record_request(method: str, status: int, started_at: float):
    """Record one handled request"""
    method = (method or "UNKNOWN").upper()
    feedback_requests_total.labels(method=method, status=str(status)).inc()
    feedback_request_duration_seconds.labels(method=method).observe(
        time.time() - started_at
    )


def record_cipher_failure(operation: str):
    cipher_failures_total.labels(operation=operation).inc()


def record_store_error(operation: str):
    store_errors_total.labels(operation=operation).inc()


def get_metrics_text() -> bytes:
    """Get Prometheus metrics in text format

    Returns:
        Metrics in Prometheus exposition format
    """
    return generate_latest(REGISTRY)
