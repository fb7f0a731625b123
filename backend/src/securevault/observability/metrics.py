"""Prometheus metrics for the vault.

Defines operational counters exposed on /metrics.
"""

from prometheus_client import Counter, Histogram

# Authentication
auth_events_total = Counter(
    "securevault_auth_events_total",
    "Authentication events",
    ["event", "outcome"]  # event: login|verify_otp, outcome: success|failure
)

# Document ingestion
documents_uploaded_total = Counter(
    "securevault_documents_uploaded_total",
    "Document upload attempts",
    ["category", "outcome"]  # outcome: success|rejected|error
)

content_verification_rejections_total = Counter(
    "securevault_content_verification_rejections_total",
    "Uploads rejected by content verification",
    ["reason"]  # reason: size|declared_type|undetectable|mismatch|detected_type
)

# Sharing
share_operations_total = Counter(
    "securevault_share_operations_total",
    "Share engine operations",
    ["operation"]  # operation: grant|revoke|update_permission
)

# Audit trail
audit_write_failures_total = Counter(
    "securevault_audit_write_failures_total",
    "Audit events that could not be persisted"
)

# HTTP boundary
http_request_duration_seconds = Histogram(
    "securevault_http_request_duration_seconds",
    "Request handling time",
    ["method", "route", "status_code"]  # route: path template, not the raw path
)
