"""Prometheus metrics for monitoring health scores, alerts and records fetches"""

from typing import Iterable

from prometheus_client import Counter, Histogram

from astral_forecast.domain.models import Alert

# Analysis metrics
analysis_counter = Counter(
    "astral_analysis_total",
    "Total analyses run",
    ["kind"],  # health_score | alerts | snapshot
)

health_score_histogram = Histogram(
    "astral_health_score",
    "Distribution of computed health scores",
    buckets=[10, 30, 50, 70, 85, 100],
)

alert_counter = Counter(
    "astral_alerts_total",
    "Alerts emitted by severity",
    ["severity"],  # critical | high | medium | low
)

# Data quality
invalid_cadence_counter = Counter(
    "astral_invalid_cadence_total",
    "Obligations skipped during projection because of an unsupported cadence",
)

# Bill history
bill_recorded_counter = Counter(
    "astral_bill_instances_total",
    "Bill history writes",
    ["operation"],  # record | amend
)

# Records API metrics
records_fetch_failures_counter = Counter(
    "records_fetch_failures_total",
    "Failed records service calls",
)

# Service health
request_duration_histogram = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency",
    ["method", "endpoint", "status"],
)


def record_health_score(score: int) -> None:
    analysis_counter.labels(kind="health_score").inc()
    health_score_histogram.observe(score)


def record_alerts(alerts: Iterable[Alert]) -> None:
    """Count emitted alerts per severity"""
    analysis_counter.labels(kind="alerts").inc()
    for alert in alerts:
        alert_counter.labels(severity=alert.severity.value).inc()
