"""
Monitoring and metrics collection for the web crawler system.
"""

import logging
import time
from typing import Any, Dict, Optional

from prometheus_client import CollectorRegistry, Counter, Gauge, Histogram, start_http_server


class MetricsCollector:
    """Prometheus metrics on a private registry."""

    def __init__(self, prometheus_port: int = 8000, registry: Optional[CollectorRegistry] = None):
        self.logger = logging.getLogger(__name__)
        self.prometheus_port = prometheus_port
        self.registry = registry or CollectorRegistry()

        self.urls_crawled = Counter(
            'crawler_urls_crawled_total',
            'Total number of URLs fetched',
            registry=self.registry
        )
        self.pages_stored = Counter(
            'crawler_pages_stored_total',
            'Total number of pages stored',
            registry=self.registry
        )
        self.errors = Counter(
            'crawler_errors_total',
            'Total number of crawl errors',
            ['error_type'],
            registry=self.registry
        )
        self.duplicates_skipped = Counter(
            'crawler_duplicates_skipped_total',
            'Total number of duplicate pages skipped',
            registry=self.registry
        )
        self.urls_filtered = Counter(
            'crawler_urls_filtered_total',
            'Total number of discovered URLs rejected by the URL filter',
            registry=self.registry
        )
        self.response_time = Histogram(
            'crawler_response_time_seconds',
            'Fetch time for HTTP requests',
            registry=self.registry
        )
        self.queue_size = Gauge(
            'crawler_queue_size',
            'Number of URLs in the frontier',
            registry=self.registry
        )
        self.bytes_downloaded = Counter(
            'crawler_bytes_downloaded_total',
            'Total characters of content downloaded',
            registry=self.registry
        )

    def start_server(self):
        """Start the Prometheus metrics HTTP server."""
        start_http_server(self.prometheus_port, registry=self.registry)
        self.logger.info(f"Prometheus metrics server started on port {self.prometheus_port}")

    def value(self, name: str, labels: Optional[Dict[str, str]] = None) -> float:
        """Current value of a sample, 0.0 if never recorded."""
        return self.registry.get_sample_value(name, labels or {}) or 0.0


class CrawlerMonitor:
    """High-level monitoring interface for the crawler."""

    def __init__(self, metrics_collector: MetricsCollector):
        self.metrics = metrics_collector
        self.start_time = time.time()

    def record_url_crawled(self, url: str, status_code: int, response_time: float):
        self.metrics.urls_crawled.inc()
        self.metrics.response_time.observe(response_time)

    def record_page_stored(self, url: str, content_size: int):
        self.metrics.pages_stored.inc()
        self.metrics.bytes_downloaded.inc(content_size)

    def record_error(self, error_type: str):
        self.metrics.errors.labels(error_type=error_type).inc()

    def record_duplicate_skipped(self, url: str):
        self.metrics.duplicates_skipped.inc()

    def record_url_filtered(self, url: str):
        self.metrics.urls_filtered.inc()

    def update_queue_size(self, size: int):
        self.metrics.queue_size.set(size)

    def get_summary(self) -> Dict[str, Any]:
        """Get a summary of the main counters."""
        runtime = time.time() - self.start_time
        crawled = self.metrics.value('crawler_urls_crawled_total')
        stored = self.metrics.value('crawler_pages_stored_total')

        return {
            'runtime_seconds': runtime,
            'urls_crawled': crawled,
            'pages_stored': stored,
            'duplicates_skipped': self.metrics.value('crawler_duplicates_skipped_total'),
            'urls_per_second': crawled / runtime if runtime > 0 else 0,
        }


# Global monitoring instance
_global_monitor: Optional[CrawlerMonitor] = None


def initialize_monitoring(prometheus_port: int = 8000, start_server: bool = False) -> CrawlerMonitor:
    """Initialize global monitoring."""
    global _global_monitor

    metrics_collector = MetricsCollector(prometheus_port)
    if start_server:
        metrics_collector.start_server()
    _global_monitor = CrawlerMonitor(metrics_collector)

    return _global_monitor


def get_monitor() -> Optional[CrawlerMonitor]:
    """Get the global monitor instance."""
    return _global_monitor
