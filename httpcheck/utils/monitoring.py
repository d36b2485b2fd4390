"""
Metrics collection for check runs.
"""

import time
import logging
from typing import Dict, Optional, Any
from pathlib import Path

from prometheus_client import CollectorRegistry, Counter, Gauge, Histogram, write_to_textfile


class MetricsCollector:
    """Collects run metrics in memory and in a Prometheus registry."""

    def __init__(self):
        self.logger = logging.getLogger(__name__)
        self.values: Dict[str, float] = {}
        self.registry = CollectorRegistry()

        self.prometheus_metrics = {
            'checks_total': Counter(
                'httpcheck_checks_total',
                'Total number of URL checks completed',
                ['status_class'],
                registry=self.registry
            ),
            'attempts_total': Counter(
                'httpcheck_attempts_total',
                'Total number of HTTP request attempts',
                registry=self.registry
            ),
            'retries_total': Counter(
                'httpcheck_retries_total',
                'Total number of retried attempts',
                registry=self.registry
            ),
            'redirects_total': Counter(
                'httpcheck_redirects_total',
                'Total number of redirects followed',
                registry=self.registry
            ),
            'response_time_seconds': Histogram(
                'httpcheck_response_time_seconds',
                'Response time of completed checks, summed across redirect hops',
                buckets=(0.05, 0.1, 0.25, 0.5, 1.0, 2.0, 5.0, 10.0, 30.0),
                registry=self.registry
            ),
            'in_flight': Gauge(
                'httpcheck_in_flight',
                'Number of checks currently in flight',
                registry=self.registry
            ),
        }

    def increment_counter(self, name: str, labels: Optional[Dict[str, str]] = None):
        """Increment a counter metric."""
        key = name
        if labels:
            key = name + '{' + ','.join(f"{k}={v}" for k, v in sorted(labels.items())) + '}'
        self.values[key] = self.values.get(key, 0) + 1

        metric = self.prometheus_metrics[name]
        if labels:
            metric.labels(**labels).inc()
        else:
            metric.inc()

    def set_gauge(self, name: str, value: float):
        """Set a gauge metric value."""
        self.values[name] = value
        self.prometheus_metrics[name].set(value)

    def observe_histogram(self, name: str, value: float):
        """Record a histogram observation."""
        self.values[name] = value
        self.prometheus_metrics[name].observe(value)

    def get_current_values(self) -> Dict[str, float]:
        """Get current values of all metrics."""
        return dict(self.values)

    def export_textfile(self, file_path: str):
        """Write the registry in Prometheus text exposition format."""
        path = Path(file_path)
        path.parent.mkdir(parents=True, exist_ok=True)
        write_to_textfile(str(path), self.registry)
        self.logger.info(f"Metrics exported to {file_path}")


class CheckMonitor:
    """High-level monitoring interface used by the checker and scheduler."""

    def __init__(self, metrics_collector: Optional[MetricsCollector] = None):
        self.metrics = metrics_collector or MetricsCollector()
        self.start_time = time.time()

    def record_attempt(self):
        self.metrics.increment_counter('attempts_total')

    def record_retry(self):
        self.metrics.increment_counter('retries_total')

    def record_redirect(self):
        self.metrics.increment_counter('redirects_total')

    def record_check(self, result):
        """Record a finished check."""
        self.metrics.increment_counter('checks_total', {'status_class': result.status_class})
        self.metrics.observe_histogram('response_time_seconds', result.response_time_ms / 1000)

    def update_in_flight(self, count: int):
        self.metrics.set_gauge('in_flight', count)

    def get_summary(self) -> Dict[str, Any]:
        """Get a summary of all metrics."""
        runtime = time.time() - self.start_time
        values = self.metrics.get_current_values()
        checks = sum(v for k, v in values.items() if k.startswith('checks_total'))

        return {
            'runtime_seconds': runtime,
            'metrics': values,
            'checks_per_second': checks / runtime if runtime > 0 else 0,
        }
