import os

# ------------------------------------------------------------------
# Configuration (from env or defaults)
# ------------------------------------------------------------------
PROMETHEUS_URL = os.getenv("PROMETHEUS_URL", "http://prometheus-kube-prometheus-prometheus.monitoring.svc.cluster.local:9090")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
EVENT_LOG_SIZE = int(os.getenv("EVENT_LOG_SIZE", "100"))

# Env vars with this prefix are forwarded to Prometheus as request headers.
PROMETHEUS_HEADER_PREFIX = "PROMETHEUS_HEADER_"

HTTP_TIMEOUT_SECONDS = 10.0
QUERY_TIMEOUT_SECONDS = 10.0

QUERY_PATH = "/api/v1/query"
