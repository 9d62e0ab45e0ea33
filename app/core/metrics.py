"""
Prometheus metrics for monitoring.

Metrics collected:
- HTTP request duration and count by status code
- Active requests
- Identity outcomes (logins, OTP checks, tenant invitations)
- Background job outcomes
"""

from prometheus_client import Counter, Gauge, Histogram, Info

# Application info
app_info = Info("tenantguard_app", "TenantGuard application information")

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
    buckets=(0.01, 0.05, 0.1, 0.5, 1.0, 2.5, 5.0, 10.0),
)

http_requests_in_progress = Gauge(
    "http_requests_in_progress",
    "Number of HTTP requests in progress",
    ["method"],
)

# Identity metrics
login_attempts_total = Counter(
    "login_attempts_total",
    "Login attempts by outcome",
    ["outcome"],
)

otp_verifications_total = Counter(
    "otp_verifications_total",
    "OTP verification attempts by outcome",
    ["outcome"],
)

tenant_invitations_total = Counter(
    "tenant_invitations_total",
    "Tenant invitations by outcome",
    ["outcome"],
)

# Background work
background_jobs_total = Counter(
    "background_jobs_total",
    "Fire-and-forget jobs by outcome",
    ["job", "status"],
)
