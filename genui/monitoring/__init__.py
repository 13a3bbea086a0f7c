"""
Performance Monitoring
Prometheus-based metrics collection for generation runs
"""

from .metrics import MetricsCollector, metrics_collector

__all__ = [
    "MetricsCollector",
    "metrics_collector",
]
