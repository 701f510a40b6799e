"""Metrics facade.

Service code should ONLY call the semantic helpers here so the backend can
change freely.

Metrics:
- statement_requests_total{granularity}   Statements served
- series_requests_total{bucket}           Series served
- statement_failures_total{reason}        Validation / data failures
- statement_compute_seconds{kind}         Time spent computing (cache misses)
- statement_cache_hits_total / statement_cache_misses_total
"""

from __future__ import annotations

import logging
import time
from contextlib import contextmanager
from typing import Iterator

from prometheus_client import Counter, Histogram

logger = logging.getLogger("metrics")

_STATEMENT_REQUESTS = Counter("statement_requests_total", "Statements served", ["granularity"])
_SERIES_REQUESTS = Counter("series_requests_total", "Statement series served", ["bucket"])
_FAILURES = Counter("statement_failures_total", "Statement/series failures", ["reason"])
_COMPUTE_SECONDS = Histogram(
    "statement_compute_seconds",
    "Time spent aggregating and computing statements",
    ["kind"],
    buckets=(0.01, 0.05, 0.1, 0.25, 0.5, 1, 2.5, 5, 10),
)
_CACHE_HITS = Counter("statement_cache_hits_total", "Statement cache hits")
_CACHE_MISSES = Counter("statement_cache_misses_total", "Statement cache misses")


def statement_served(granularity: str) -> None:
    _STATEMENT_REQUESTS.labels(granularity=granularity).inc()


def series_served(bucket: str) -> None:
    _SERIES_REQUESTS.labels(bucket=bucket).inc()


def report_failed(reason: str) -> None:
    _FAILURES.labels(reason=reason).inc()
    logger.debug("metric statement_failures_total reason=%s", reason)


def cache_hit() -> None:
    _CACHE_HITS.inc()


def cache_miss() -> None:
    _CACHE_MISSES.inc()


@contextmanager
def time_compute(kind: str) -> Iterator[None]:
    started = time.perf_counter()
    try:
        yield
    finally:
        _COMPUTE_SECONDS.labels(kind=kind).observe(time.perf_counter() - started)
