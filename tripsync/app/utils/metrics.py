"""Prometheus metrics for oracle calls and ingestion."""

from prometheus_client import Counter, Histogram

# Oracle metrics
oracle_latency_ms = Histogram(
    "oracle_latency_ms",
    "Oracle call latency in milliseconds",
    ["purpose", "outcome"],
    buckets=[100, 250, 500, 1000, 2000, 4000, 8000, 16000, 32000, 60000],
)

oracle_repairs_total = Counter(
    "oracle_repairs_total",
    "Total repair round-trips after schema validation failure",
    ["purpose"],
)

# Ingestion metrics
ingest_outcomes_total = Counter(
    "ingest_outcomes_total",
    "Total ingest outcomes",
    ["mode", "status"],
)


class PrometheusOracleMetrics:
    """Prometheus-based oracle/ingest metrics implementation."""

    def record_latency(self, purpose: str, outcome: str, latency_ms: float) -> None:
        """Record oracle call latency."""
        oracle_latency_ms.labels(purpose=purpose, outcome=outcome).observe(latency_ms)

    def inc_repair(self, purpose: str) -> None:
        """Increment repair counter."""
        oracle_repairs_total.labels(purpose=purpose).inc()

    def inc_ingest(self, mode: str, status: str) -> None:
        """Increment ingest outcome counter."""
        ingest_outcomes_total.labels(mode=mode, status=status).inc()
