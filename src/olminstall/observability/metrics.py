"""Prometheus metrics for olminstall.

Exposes metrics about installation attempts and their stages.
"""

from __future__ import annotations

from prometheus_client import REGISTRY, CollectorRegistry, Counter, Histogram, start_http_server


class MetricsCollector:
    """Prometheus metrics collector for installations.

    Provides metrics for:
    - Installation outcomes, labelled with the stage that ended them
    - Per-stage latency
    - Install plan approval retries caused by resource version conflicts
    """

    def __init__(
        self,
        namespace: str = "olminstall",
        registry: CollectorRegistry | None = None,
    ) -> None:
        """Initialize metrics.

        Args:
            namespace: Prometheus namespace prefix for all metrics.
            registry: Registry to register with (default: global registry).
        """
        self.namespace = namespace
        self.registry = registry if registry is not None else REGISTRY

        self.installs_total = Counter(
            f"{namespace}_installs_total",
            "Total operator installation attempts",
            ["outcome", "stage"],
            registry=self.registry,
        )

        self.stage_duration = Histogram(
            f"{namespace}_install_stage_duration_seconds",
            "Time spent in each installation stage",
            ["stage"],
            buckets=[0.05, 0.1, 0.5, 1.0, 5.0, 15.0, 30.0, 60.0, 120.0, 300.0],
            registry=self.registry,
        )

        self.approval_retries_total = Counter(
            f"{namespace}_install_plan_approval_retries_total",
            "Install plan approval attempts retried after a resource version conflict",
            registry=self.registry,
        )

    def record_install(self, outcome: str, stage: str = "") -> None:
        """Record the outcome of one installation attempt.

        Args:
            outcome: "succeeded" or "failed".
            stage: Stage that failed, empty on success.
        """
        self.installs_total.labels(outcome=outcome, stage=stage).inc()

    def observe_stage(self, stage: str, duration_seconds: float) -> None:
        """Record how long a stage took."""
        self.stage_duration.labels(stage=stage).observe(duration_seconds)

    def record_approval_retry(self) -> None:
        """Record one retried install plan approval."""
        self.approval_retries_total.inc()


_metrics: MetricsCollector | None = None


def get_metrics() -> MetricsCollector:
    """Get the global metrics collector.

    Returns:
        The global MetricsCollector instance.
    """
    global _metrics  # noqa: PLW0603
    if _metrics is None:
        _metrics = MetricsCollector()
    return _metrics


def start_metrics_server(port: int = 8080) -> None:
    """Start the Prometheus metrics HTTP server.

    Args:
        port: Port to serve metrics on.
    """
    start_http_server(port)
