"""
Track artifact store activity in Prometheus.
"""

from prometheus_client import Counter


adapter_operations = Counter(
    "oidc_adapter_operations_total",
    "Artifact store operations by model kind",
    ["model", "operation"],
)
backend_failures = Counter(
    "oidc_adapter_backend_failures_total",
    "Redis calls that failed with the backend unavailable",
    ["operation"],
)
revoked_artifacts = Counter(
    "oidc_adapter_revoked_artifacts_total",
    "Artifacts deleted by grant revocation",
)


def track_operation(model: str, operation: str):
    adapter_operations.labels(model=model, operation=operation).inc()


def track_revocation(count: int):
    """
    Count artifacts removed by a grant revocation.
    """
    if count > 0:
        revoked_artifacts.inc(count)
