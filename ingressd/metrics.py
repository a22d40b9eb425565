from __future__ import annotations

from prometheus_client import CONTENT_TYPE_LATEST, Counter, Gauge, generate_latest

_HEALTH_CHECK_FAILURES = Gauge(
    "ingressd_health_check_failures",
    "Endpoint health checks that failed during the current reconciliation cycle",
)
_PROBES = Counter(
    "ingressd_probes_total",
    "Individual health probe requests",
    labelnames=("scheme", "result"),
)
_CYCLES = Counter(
    "ingressd_cycles_total",
    "Reconciliation cycles",
    labelnames=("result",),
)
_RECORD_UPDATES = Counter(
    "ingressd_record_updates_total",
    "Per-record reconciliation outcomes",
    labelnames=("record", "result"),
)
_HEALTHY_ENDPOINTS = Gauge(
    "ingressd_healthy_endpoints",
    "Healthy endpoints written to a record on its last successful update",
    labelnames=("record",),
)


def reset_health_check_failures() -> None:
    _HEALTH_CHECK_FAILURES.set(0)


def record_health_check_failure() -> None:
    _HEALTH_CHECK_FAILURES.inc()


def record_probe(*, scheme: str, ok: bool) -> None:
    _PROBES.labels(scheme=scheme, result="ok" if ok else "error").inc()


def record_cycle(*, ok: bool) -> None:
    _CYCLES.labels(result="ok" if ok else "aborted").inc()


def record_update(*, record: str, result: str, healthy: int | None = None) -> None:
    _RECORD_UPDATES.labels(record=record, result=result).inc()
    if healthy is not None:
        _HEALTHY_ENDPOINTS.labels(record=record).set(healthy)


def render_metrics() -> bytes:
    return generate_latest()


def metrics_content_type() -> str:
    return CONTENT_TYPE_LATEST
