# backend/monitoring.py
"""
Centralized monitoring: Prometheus metrics, structured JSON logging, optional Sentry.

Env vars:
- PROMETHEUS_ENABLED (default: true)
- SENTRY_DSN (optional)
- LOG_AS_JSON (default: true)
- LOG_LEVEL (default: INFO)
- ENVIRONMENT (default: development)
"""

import os
import logging
import time
from typing import Tuple

import sentry_sdk
from pythonjsonlogger import jsonlogger
from prometheus_client import (
    Counter, Histogram,
    generate_latest, CONTENT_TYPE_LATEST, REGISTRY,
)

# --- ENV flags
PROMETHEUS_ENABLED = os.getenv("PROMETHEUS_ENABLED", "true").lower() in ("1", "true", "yes")
SENTRY_DSN = os.getenv("SENTRY_DSN", None)
LOG_AS_JSON = os.getenv("LOG_AS_JSON", "true").lower() in ("1", "true", "yes")
ENVIRONMENT = os.getenv("ENVIRONMENT", "development")


# --- Logger setup
def setup_logger(name: str = "declarative-bff", level: int = None) -> logging.Logger:
    level = logging.getLevelName(os.getenv("LOG_LEVEL", "INFO")) if level is None else level
    logger = logging.getLogger(name)
    logger.setLevel(level)
    if not logger.handlers:
        handler = logging.StreamHandler()
        if LOG_AS_JSON:
            fmt = jsonlogger.JsonFormatter(
                "%(asctime)s %(levelname)s %(name)s %(message)s"
            )
            handler.setFormatter(fmt)
        logger.addHandler(handler)
    return logger


logger = setup_logger()

# --- Sentry (optional)
if SENTRY_DSN:
    sentry_sdk.init(dsn=SENTRY_DSN, environment=ENVIRONMENT)
    logger.info("Sentry initialized")


# --- Prometheus metrics
REQUEST_COUNT = Counter(
    "bff_requests_total",
    "Total HTTP requests",
    ["method", "endpoint", "status"],
)

REQUEST_LATENCY = Histogram(
    "bff_request_latency_seconds",
    "Request latency in seconds",
    ["endpoint"],
)

GENERATION_COUNTER = Counter(
    "bff_generations_total",
    "Query generation attempts",
    ["outcome"],
)

UPSTREAM_LATENCY = Histogram(
    "bff_upstream_latency_seconds",
    "LLM provider call latency",
    ["outcome"],
)

HISTORY_FAILURES = Counter(
    "bff_history_failures_total",
    "History store failures",
    ["operation"],
)


# --- Helper wrappers (never crash the app)
def observe_request(start_ts: float, endpoint: str, method: str, status: str):
    try:
        REQUEST_LATENCY.labels(endpoint=endpoint).observe(time.time() - start_ts)
        REQUEST_COUNT.labels(method=method, endpoint=endpoint, status=status).inc()
    except Exception:
        pass


def observe_upstream(start_ts: float, outcome: str):
    try:
        UPSTREAM_LATENCY.labels(outcome=outcome).observe(time.time() - start_ts)
    except Exception:
        pass


def inc_generation(outcome: str):
    try:
        GENERATION_COUNTER.labels(outcome=outcome).inc()
    except Exception:
        pass


def inc_history_failure(operation: str):
    try:
        HISTORY_FAILURES.labels(operation=operation).inc()
    except Exception:
        pass


def prometheus_metrics_response() -> Tuple[bytes, str]:
    """Return (body_bytes, content_type) for Prometheus scrape."""
    try:
        return generate_latest(REGISTRY), CONTENT_TYPE_LATEST
    except Exception:
        return b"", CONTENT_TYPE_LATEST
