"""
Helper functions for Prometheus metric registration.

Metrics are module-level singletons; re-importing a metrics module (uvicorn
--reload, test reloads) would otherwise fail with a duplicate registration
error, so existing collectors are returned from the registry instead.
"""

from typing import Any, TypeVar

from prometheus_client import REGISTRY, Counter, Gauge, Histogram

MetricT = TypeVar("MetricT", Counter, Gauge, Histogram)


def _get_or_create(
    metric_cls: type[MetricT],
    name: str,
    doc: str,
    labels: list[str] | None = None,
    **kwargs: Any,
) -> MetricT:
    """
    Get existing metric or create new one.

    Args:
        metric_cls: Prometheus metric class.
        name: Metric name.
        doc: Metric documentation.
        labels: Optional list of label names.
        **kwargs: Extra constructor arguments (e.g. histogram buckets).

    Returns:
        Metric instance.
    """
    try:
        return metric_cls(name, doc, labels or [], **kwargs)
    except ValueError:
        # Metric already exists, retrieve it from registry
        return REGISTRY._names_to_collectors[name]


def _get_or_create_counter(
    name: str, doc: str, labels: list[str] | None = None
) -> Counter:
    """Get existing counter or create new one."""
    return _get_or_create(Counter, name, doc, labels)


def _get_or_create_gauge(
    name: str, doc: str, labels: list[str] | None = None
) -> Gauge:
    """Get existing gauge or create new one."""
    return _get_or_create(Gauge, name, doc, labels)


def _get_or_create_histogram(
    name: str,
    doc: str,
    labels: list[str] | None = None,
    buckets: tuple[float, ...] | None = None,
) -> Histogram:
    """Get existing histogram or create new one."""
    if buckets:
        return _get_or_create(Histogram, name, doc, labels, buckets=buckets)
    return _get_or_create(Histogram, name, doc, labels)
