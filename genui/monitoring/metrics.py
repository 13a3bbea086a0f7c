"""
Metrics Collection
Prometheus metrics for UI generation tracking
"""

import time
from prometheus_client import Counter, Gauge, Histogram, Summary, generate_latest


class MetricsCollector:
    """
    Collects and exposes Prometheus metrics for generation runs.
    """

    def __init__(self) -> None:
        # Generation metrics
        self.generations_total = Counter(
            "genui_generations_total",
            "Total number of generation runs",
            ["outcome"],
        )
        self.generation_duration = Histogram(
            "genui_generation_duration_seconds",
            "Generation duration in seconds",
            ["outcome"],
            buckets=[0.1, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0],
        )
        self.attempts_total = Counter(
            "genui_attempts_total",
            "Total number of design attempts",
            ["result"],
        )
        self.generation_tokens = Summary(
            "genui_generation_tokens",
            "Estimated tokens per generation",
            ["direction"],
        )

        # Stream metrics
        self.warnings_total = Counter(
            "genui_warnings_total",
            "Total number of warning events",
            ["code"],
        )
        self.patches_total = Counter(
            "genui_patches_total",
            "Total number of patch events",
            ["op"],
        )

        # Error metrics
        self.errors_total = Counter(
            "genui_errors_total",
            "Total number of errors",
            ["error_type", "component"],
        )

        # System metrics
        self.uptime = Gauge(
            "genui_uptime_seconds",
            "Service uptime in seconds",
        )
        self.start_time = time.time()

    def record_generation(self, outcome: str, duration: float) -> None:
        """Record a finished generation (done or error code)."""
        self.generations_total.labels(outcome=outcome).inc()
        self.generation_duration.labels(outcome=outcome).observe(duration)

    def record_attempt(self, result: str) -> None:
        """Record one design attempt."""
        self.attempts_total.labels(result=result).inc()

    def record_tokens(self, prompt_tokens: int, completion_tokens: int) -> None:
        """Record token estimates."""
        self.generation_tokens.labels(direction="prompt").observe(prompt_tokens)
        self.generation_tokens.labels(direction="completion").observe(completion_tokens)

    def record_warning(self, code: str) -> None:
        """Record a warning event."""
        self.warnings_total.labels(code=code).inc()

    def record_patch(self, op: str) -> None:
        """Record a patch event."""
        self.patches_total.labels(op=op).inc()

    def record_error(self, error_type: str, component: str) -> None:
        """Record an error."""
        self.errors_total.labels(error_type=error_type, component=component).inc()

    def update_uptime(self) -> None:
        """Update the uptime metric."""
        self.uptime.set(time.time() - self.start_time)

    def get_metrics(self) -> bytes:
        """Get metrics in Prometheus format."""
        self.update_uptime()
        return generate_latest()


# Global metrics collector instance
metrics_collector = MetricsCollector()
