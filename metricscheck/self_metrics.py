"""Self-monitoring metrics for conformance checks using prometheus_client."""
from prometheus_client import CollectorRegistry, Counter


class SelfMetrics:
    """Counters describing the checks this process has run."""

    def __init__(self, registry=None, prefix=""):
        if registry is None:
            # Custom registry to avoid exporting default Python/process metrics
            registry = CollectorRegistry()
        self.registry = registry

        self.checks_total = Counter(
            f"{prefix}conformance_checks_total",
            "Total number of conformance checks run",
            ["component", "result"],
            registry=registry
        )

        self.invalid_labels_total = Counter(
            f"{prefix}conformance_invalid_labels_total",
            "Total number of invalid labels reported",
            ["component"],
            registry=registry
        )

        self.skipped_total = Counter(
            f"{prefix}conformance_skipped_total",
            "Total number of checks skipped for lack of a running component",
            ["component"],
            registry=registry
        )

    def record_check(self, component: str, ok: bool, invalid_label_count: int = 0):
        """Record the outcome of one check."""
        result = "pass" if ok else "fail"
        self.checks_total.labels(component=component, result=result).inc()
        if invalid_label_count:
            self.invalid_labels_total.labels(component=component).inc(invalid_label_count)

    def record_skip(self, component: str):
        """Record a skipped check."""
        self.skipped_total.labels(component=component).inc()
