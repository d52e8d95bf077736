"""Prometheus metrics for explainer calls, cache usage and retrieval."""

from prometheus_client import Counter, Histogram

# Explainer (external model) metrics
explainer_latency_ms = Histogram(
    "explainer_latency_ms",
    "External model call latency in milliseconds",
    ["outcome"],
    buckets=[10, 50, 100, 200, 500, 1000, 2000, 4000, 8000],
)

explainer_errors_total = Counter(
    "explainer_errors_total",
    "Total external model call errors",
    ["reason"],
)

# Cache metrics
cache_hits_total = Counter(
    "cache_hits_total",
    "Total cache hits",
    ["namespace"],
)

cache_misses_total = Counter(
    "cache_misses_total",
    "Total cache misses (including expired entries)",
    ["namespace"],
)

# Retrieval metrics
clauses_retrieved = Histogram(
    "clauses_retrieved",
    "Number of clauses returned per question",
    ["strategy"],
    buckets=[0, 1, 2, 5, 10, 15, 25],
)

retrieval_errors_total = Counter(
    "retrieval_errors_total",
    "Clause store errors recovered as empty results",
    ["strategy"],
)


class PrometheusExplainerMetrics:
    """Prometheus-based explainer metrics implementation."""

    def record_latency(self, outcome: str, latency_ms: float) -> None:
        """Record external model call latency."""
        explainer_latency_ms.labels(outcome=outcome).observe(latency_ms)

    def inc_error(self, reason: str) -> None:
        """Increment error counter."""
        explainer_errors_total.labels(reason=reason).inc()
