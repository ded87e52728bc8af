"""
Shared metrics configuration for the Staff Gateway client.
"""

import time
import threading
from contextlib import contextmanager
from typing import Dict, Any, Optional, Iterator

from prometheus_client import Counter, Histogram, Gauge, Info, CollectorRegistry


class MetricsCollector:
    """Centralized metrics collector for the gateway client."""

    def __init__(self, service_name: str, registry: Optional[CollectorRegistry] = None):
        self.service_name = service_name
        self.registry = registry
        self._metrics: Dict[str, Any] = {}
        self._lock = threading.Lock()
        self._setup_metrics()

    def _setup_metrics(self):
        """Set up client metrics."""

        self._metrics["client_info"] = Info(
            "gateway_client",
            "Gateway client information",
            registry=self.registry
        )
        self._metrics["client_info"].info({
            "service": self.service_name,
            "version": "1.0.0"
        })

        self._metrics["requests_total"] = Counter(
            "gateway_requests_total",
            "Total outbound HTTP requests",
            ["method", "status_code"],
            registry=self.registry
        )

        self._metrics["request_duration_seconds"] = Histogram(
            "gateway_request_duration_seconds",
            "Outbound HTTP request duration in seconds",
            ["method"],
            registry=self.registry
        )

        self._metrics["errors_total"] = Counter(
            "gateway_errors_total",
            "Total classified request errors",
            ["kind"],
            registry=self.registry
        )

        self._metrics["refresh_total"] = Counter(
            "gateway_refresh_total",
            "Total credential renewal calls",
            ["outcome"],
            registry=self.registry
        )

        self._metrics["refresh_queue_depth"] = Gauge(
            "gateway_refresh_queue_depth",
            "Requests waiting on an in-flight credential renewal",
            registry=self.registry
        )

        self._metrics["session_teardowns_total"] = Counter(
            "gateway_session_teardowns_total",
            "Total session teardowns",
            ["reason"],
            registry=self.registry
        )

    def get_metric(self, name: str):
        """Get a metric by name."""
        return self._metrics.get(name)

    def record_request(self, method: str, status_code: Optional[int], duration: float):
        """Record an outbound request; status 0 means no response was received."""
        self._metrics["requests_total"].labels(
            method=method,
            status_code=str(status_code or 0)
        ).inc()
        self._metrics["request_duration_seconds"].labels(method=method).observe(duration)

    def record_error(self, kind: str):
        """Record a classified error."""
        self._metrics["errors_total"].labels(kind=kind).inc()

    def record_refresh(self, outcome: str):
        """Record a renewal outcome."""
        self._metrics["refresh_total"].labels(outcome=outcome).inc()

    def record_teardown(self, reason: str):
        """Record a session teardown."""
        self._metrics["session_teardowns_total"].labels(reason=reason).inc()

    def set_queue_depth(self, depth: int):
        """Publish the current renewal wait-queue depth."""
        with self._lock:
            self._metrics["refresh_queue_depth"].set(depth)

    @contextmanager
    def time_request(self, method: str) -> Iterator[Dict[str, Any]]:
        """Time an outbound request; the caller fills in ``status_code``."""
        outcome: Dict[str, Any] = {"status_code": None}
        start_time = time.perf_counter()
        try:
            yield outcome
        finally:
            self.record_request(method, outcome["status_code"], time.perf_counter() - start_time)


def get_metrics_collector(service_name: str, registry: Optional[CollectorRegistry] = None) -> MetricsCollector:
    """Get a metrics collector for a service."""
    return MetricsCollector(service_name, registry)
