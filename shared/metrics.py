"""
Shared metrics configuration for the Hybrid Authorization Service.
"""

import threading
from typing import Dict, Any, Optional

from prometheus_client import Counter, Histogram, Info, CollectorRegistry


class MetricsCollector:
    """Centralized metrics collector for services."""

    def __init__(self, service_name: str, registry: Optional[CollectorRegistry] = None):
        self.service_name = service_name
        self.registry = registry
        self._metrics: Dict[str, Any] = {}
        self._setup_metrics()

    def _setup_metrics(self):
        """Set up common metrics for the service."""
        kwargs = {"registry": self.registry} if self.registry is not None else {}

        self._metrics["service_info"] = Info(
            "service_info",
            "Service information",
            **kwargs
        )
        self._metrics["service_info"].info({
            "service": self.service_name,
            "version": "1.0.0"
        })

        self._metrics["http_requests_total"] = Counter(
            "http_requests_total",
            "Total HTTP requests",
            ["method", "endpoint", "status_code"],
            **kwargs
        )

        self._metrics["http_request_duration_seconds"] = Histogram(
            "http_request_duration_seconds",
            "HTTP request duration in seconds",
            ["method", "endpoint"],
            **kwargs
        )

        self._metrics["health_check_total"] = Counter(
            "health_check_total",
            "Total health check requests",
            ["status"],
            **kwargs
        )

        self._metrics["errors_total"] = Counter(
            "errors_total",
            "Total errors",
            ["error_type", "service"],
            **kwargs
        )

        self._setup_authz_metrics(kwargs)

    def _setup_authz_metrics(self, kwargs: Dict[str, Any]):
        """Set up authorization-specific metrics."""
        self._metrics["authz_access_checks_total"] = Counter(
            "authz_access_checks_total",
            "Total access checks",
            ["decision"],
            **kwargs
        )

        self._metrics["authz_access_check_duration_seconds"] = Histogram(
            "authz_access_check_duration_seconds",
            "Access check duration in seconds",
            **kwargs
        )

        self._metrics["authz_assignment_cache_total"] = Counter(
            "authz_assignment_cache_total",
            "Assignment set lookups by cache outcome",
            ["outcome"],
            **kwargs
        )

        self._metrics["authz_assignment_mutations_total"] = Counter(
            "authz_assignment_mutations_total",
            "Assignment mutations",
            ["operation"],
            **kwargs
        )

    def get_metric(self, name: str):
        """Get a metric by name."""
        return self._metrics.get(name)

    def record_http_request(self, method: str, endpoint: str, status_code: int, duration: float):
        """Record HTTP request metrics."""
        self._metrics["http_requests_total"].labels(
            method=method,
            endpoint=endpoint,
            status_code=str(status_code)
        ).inc()

        self._metrics["http_request_duration_seconds"].labels(
            method=method,
            endpoint=endpoint
        ).observe(duration)

    def record_health_check(self, status: str):
        """Record health check metrics."""
        self._metrics["health_check_total"].labels(status=status).inc()

    def record_error(self, error_type: str, service: Optional[str] = None):
        """Record error metrics."""
        service_name = service or self.service_name
        self._metrics["errors_total"].labels(error_type=error_type, service=service_name).inc()

    def record_access_check(self, allowed: bool, duration: float):
        """Record the outcome and duration of an access check."""
        self._metrics["authz_access_checks_total"].labels(
            decision="allow" if allowed else "deny"
        ).inc()
        self._metrics["authz_access_check_duration_seconds"].observe(duration)

    def increment_counter(self, metric_name: str, **labels):
        """Increment a counter metric."""
        if metric_name in self._metrics:
            self._metrics[metric_name].labels(**labels).inc()


_collectors: Dict[str, MetricsCollector] = {}
_collectors_lock = threading.Lock()


def get_metrics_collector(service_name: str, registry: Optional[CollectorRegistry] = None) -> MetricsCollector:
    """Get a metrics collector for a service.

    Collectors on the default registry are shared per service name, since
    prometheus_client refuses to register the same metric twice.
    """
    if registry is not None:
        return MetricsCollector(service_name, registry)

    with _collectors_lock:
        collector = _collectors.get(service_name)
        if collector is None:
            collector = MetricsCollector(service_name)
            _collectors[service_name] = collector
        return collector
