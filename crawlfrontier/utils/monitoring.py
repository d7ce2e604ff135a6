"""
Monitoring and metrics collection for the crawl frontier.
"""

import time
import logging
from typing import Dict, Optional, Any, Tuple

from prometheus_client import Counter, Histogram, Gauge, CollectorRegistry, generate_latest
from prometheus_client import start_http_server


LabelKey = Tuple[Tuple[str, str], ...]


class MetricsCollector:
    """
    Keeps in-process metric values and mirrors them into a private
    Prometheus registry.
    """

    def __init__(self, enable_prometheus: bool = False, prometheus_port: int = 8000):
        self.logger = logging.getLogger(__name__)
        self.enable_prometheus = enable_prometheus
        self.prometheus_port = prometheus_port
        self.values: Dict[str, Dict[LabelKey, float]] = {}

        self.prometheus_registry = CollectorRegistry()
        self.prometheus_metrics = {
            'requests_admitted_total': Counter(
                'crawler_requests_admitted_total',
                'Requests admitted to the frontier',
                registry=self.prometheus_registry
            ),
            'requests_rejected_total': Counter(
                'crawler_requests_rejected_total',
                'Requests filtered out by the frontier',
                ['reason'],
                registry=self.prometheus_registry
            ),
            'urls_crawled_total': Counter(
                'crawler_urls_crawled_total',
                'Total number of URLs crawled',
                registry=self.prometheus_registry
            ),
            'http_responses_total': Counter(
                'crawler_http_responses_total',
                'HTTP responses by status code',
                ['status_code'],
                registry=self.prometheus_registry
            ),
            'errors_total': Counter(
                'crawler_errors_total',
                'Total number of crawl errors',
                ['error_type'],
                registry=self.prometheus_registry
            ),
            'response_time_seconds': Histogram(
                'crawler_response_time_seconds',
                'Response time for HTTP requests',
                registry=self.prometheus_registry
            ),
            'queue_size': Gauge(
                'crawler_queue_size',
                'Number of requests waiting in the frontier',
                registry=self.prometheus_registry
            ),
            'active_workers': Gauge(
                'crawler_active_workers',
                'Number of workers processing a page',
                registry=self.prometheus_registry
            )
        }

    def start_prometheus_server(self):
        """Start Prometheus metrics HTTP server."""
        if not self.enable_prometheus:
            return

        try:
            start_http_server(self.prometheus_port, registry=self.prometheus_registry)
            self.logger.info(f"Prometheus metrics server started on port {self.prometheus_port}")
        except OSError as e:
            self.logger.error(f"Failed to start Prometheus server: {e}")

    def _prometheus_metric(self, name: str, labels: Optional[Dict[str, str]]):
        metric = self.prometheus_metrics.get(name)
        if metric is not None and labels:
            return metric.labels(**labels)
        return metric

    def increment_counter(self, name: str, labels: Optional[Dict[str, str]] = None, amount: float = 1):
        """Increment a counter metric."""
        key = tuple(sorted((labels or {}).items()))
        series = self.values.setdefault(name, {})
        series[key] = series.get(key, 0) + amount

        metric = self._prometheus_metric(name, labels)
        if metric is not None:
            metric.inc(amount)

    def set_gauge(self, name: str, value: float, labels: Optional[Dict[str, str]] = None):
        """Set a gauge metric value."""
        key = tuple(sorted((labels or {}).items()))
        self.values.setdefault(name, {})[key] = value

        metric = self._prometheus_metric(name, labels)
        if metric is not None:
            metric.set(value)

    def observe_histogram(self, name: str, value: float):
        """Record a histogram observation."""
        self.values.setdefault(name, {})[()] = value

        metric = self._prometheus_metric(name, None)
        if metric is not None:
            metric.observe(value)

    def get_value(self, name: str, labels: Optional[Dict[str, str]] = None) -> float:
        """Get the current value of one metric series."""
        key = tuple(sorted((labels or {}).items()))
        return self.values.get(name, {}).get(key, 0)

    def get_current_values(self) -> Dict[str, float]:
        """Get current values of all metrics, summed across labels."""
        return {name: sum(series.values()) for name, series in self.values.items()}

    def export_prometheus(self) -> bytes:
        """Render the registry in the Prometheus text format."""
        return generate_latest(self.prometheus_registry)


class CrawlerMonitor:
    """High-level monitoring interface for the crawler."""

    def __init__(self, metrics_collector: MetricsCollector):
        self.metrics = metrics_collector
        self.logger = logging.getLogger(__name__)
        self.start_time = time.time()

    def record_request_admitted(self):
        self.metrics.increment_counter('requests_admitted_total')

    def record_request_rejected(self, reason: str = 'filtered'):
        self.metrics.increment_counter('requests_rejected_total', {'reason': reason})

    def record_url_crawled(self, url: str, status_code: int, response_time: float):
        """Record a URL crawl event."""
        self.metrics.increment_counter('urls_crawled_total')
        self.metrics.observe_histogram('response_time_seconds', response_time)
        self.metrics.increment_counter('http_responses_total', {'status_code': str(status_code)})

    def record_error(self, error_type: str):
        self.metrics.increment_counter('errors_total', {'error_type': error_type})

    def update_queue_size(self, size: int):
        self.metrics.set_gauge('queue_size', size)

    def update_active_workers(self, count: int):
        self.metrics.set_gauge('active_workers', count)

    def get_summary(self) -> Dict[str, Any]:
        """Get a summary of all metrics."""
        current_values = self.metrics.get_current_values()
        runtime = time.time() - self.start_time

        return {
            'runtime_seconds': runtime,
            'metrics': current_values,
            'rates': {
                'urls_per_second': current_values.get('urls_crawled_total', 0) / runtime if runtime > 0 else 0,
            }
        }


def initialize_monitoring(enable_prometheus: bool = False, prometheus_port: int = 8000) -> CrawlerMonitor:
    """Create a monitor and start its metrics endpoint when enabled."""
    metrics_collector = MetricsCollector(enable_prometheus, prometheus_port)
    metrics_collector.start_prometheus_server()
    return CrawlerMonitor(metrics_collector)
