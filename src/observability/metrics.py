"""Prometheus metric definitions for the admin service.

All metrics are module-level singletons registered with the default
prometheus_client registry.  Import them wherever instrumentation is needed.
"""

from prometheus_client import Counter, Gauge, Histogram, Info

# ---------------------------------------------------------------------------
# Histogram bucket definitions
# ---------------------------------------------------------------------------

REQUEST_DURATION_BUCKETS = (0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.0, 5.0, 10.0)
PROBE_DURATION_BUCKETS = (0.1, 0.25, 0.5, 1.0, 2.0, 5.0, 10.0)

# ---------------------------------------------------------------------------
# Request-level metrics
# ---------------------------------------------------------------------------

REQUEST_DURATION = Histogram(
    "pharmacy_admin_request_duration_seconds",
    "End-to-end request duration in seconds",
    labelnames=["endpoint"],
    buckets=REQUEST_DURATION_BUCKETS,
)

REQUESTS_TOTAL = Counter(
    "pharmacy_admin_requests_total",
    "Total number of requests",
    labelnames=["endpoint", "status"],
)

REQUESTS_IN_PROGRESS = Gauge(
    "pharmacy_admin_requests_in_progress",
    "Number of requests currently being processed",
    labelnames=["endpoint"],
)

# ---------------------------------------------------------------------------
# Auth metrics
# ---------------------------------------------------------------------------

LOGIN_ATTEMPTS_TOTAL = Counter(
    "pharmacy_admin_login_attempts_total",
    "Admin login attempts by outcome",
    labelnames=["outcome"],  # success | failure | locked
)

ACCOUNT_LOCKOUTS_TOTAL = Counter(
    "pharmacy_admin_account_lockouts_total",
    "Number of times an identity reached the failed-attempt threshold",
)

# ---------------------------------------------------------------------------
# Integration monitor metrics
# ---------------------------------------------------------------------------

PROBE_DURATION = Histogram(
    "pharmacy_admin_integration_probe_duration_seconds",
    "Duration of integration health probes in seconds",
    labelnames=["service"],
    buckets=PROBE_DURATION_BUCKETS,
)

INTEGRATION_STATUS = Gauge(
    "pharmacy_admin_integration_status",
    "Integration health (0=healthy, 1=warning, 2=error, 3=offline)",
    labelnames=["service"],
)

JOB_RUNS_TOTAL = Counter(
    "pharmacy_admin_monitor_job_runs_total",
    "Scheduled monitor job executions",
    labelnames=["job", "status"],
)

HEALTH_ALERTS_TOTAL = Counter(
    "pharmacy_admin_health_alerts_total",
    "Health alerts raised",
    labelnames=["service", "status"],
)

REPORTS_TOTAL = Counter(
    "pharmacy_admin_reports_total",
    "Total number of generated health reports",
    labelnames=["kind"],
)

APP_INFO = Info(
    "pharmacy_admin",
    "Pharmacy admin service build information",
)
