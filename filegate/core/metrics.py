"""
Prometheus metrics for monitoring.

Metrics collected:
- HTTP request duration (histogram)
- HTTP request count by status code (counter)
- Active requests (gauge)
- File operations by action (counter)
- Admission rejections by code (counter)
- Container access denials by reason (counter)
- Tenant provisioning outcomes (counter)
"""

from prometheus_client import Counter, Gauge, Histogram, Info


# Application info
app_info = Info("filegate_app", "FileGate application information")

# HTTP metrics
http_requests_total = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["method", "endpoint", "status_code"],
)

http_request_duration_seconds = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint"],
    buckets=(0.01, 0.05, 0.1, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0),
)

http_requests_in_progress = Gauge(
    "http_requests_in_progress",
    "Number of HTTP requests in progress",
    ["method"],
)

# Business metrics
file_operations_total = Counter(
    "file_operations_total",
    "File operations completed",
    ["action"],
)

file_bytes_uploaded_total = Counter(
    "file_bytes_uploaded_total",
    "Bytes accepted by the upload pipeline",
)

admission_rejections_total = Counter(
    "admission_rejections_total",
    "Uploads rejected by the admission pipeline",
    ["code"],
)

container_access_denied_total = Counter(
    "container_access_denied_total",
    "Container access denials",
    ["reason"],
)

tenants_provisioned_total = Counter(
    "tenants_provisioned_total",
    "Provisioning workflow outcomes",
    ["action", "outcome"],
)
