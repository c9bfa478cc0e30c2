"""Prometheus metrics for seller onboarding.

Exposed at /metrics. Label values are small closed sets (statuses and
outcomes), never ids or emails.
"""

from prometheus_client import Counter

http_requests_total = Counter(
    "seller_onboarding_http_requests_total",
    "HTTP requests by method and response status",
    ["method", "status"]
)

seller_applications_total = Counter(
    "seller_onboarding_applications_total",
    "Seller application submissions",
    ["outcome"]  # created|resubmitted
)

seller_verifications_total = Counter(
    "seller_onboarding_verifications_total",
    "Admin verification decisions",
    ["status"]  # pending|approved|rejected
)

documents_uploaded_total = Counter(
    "seller_onboarding_documents_uploaded_total",
    "Seller document uploads during application",
    ["result"]  # success|error
)

documents_migrated_total = Counter(
    "seller_onboarding_documents_migrated_total",
    "Legacy documents handled by the migration runner",
    ["result"]  # migrated|skipped|error
)
