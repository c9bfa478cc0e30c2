"""Observability module: structured logging, request IDs, metrics, health checks."""

from .logging_config import configure_logging, get_logger
from .metrics import (
    http_requests_total,
    seller_applications_total,
    seller_verifications_total,
    documents_uploaded_total,
    documents_migrated_total,
)
from .request_id import request_id_var, get_request_id, set_request_id, generate_request_id
from .health import HealthStatus, ComponentHealth
from .middleware import RequestIDMiddleware

__all__ = [
    # Logging
    "configure_logging",
    "get_logger",
    # Metrics
    "http_requests_total",
    "seller_applications_total",
    "seller_verifications_total",
    "documents_uploaded_total",
    "documents_migrated_total",
    # Request ID
    "request_id_var",
    "get_request_id",
    "set_request_id",
    "generate_request_id",
    # Health
    "HealthStatus",
    "ComponentHealth",
    # Middleware
    "RequestIDMiddleware",
]
