"""Prometheus metrics definitions for the respawn watcher.

Defines counters, gauges, and histograms for monitoring:
- Notification delivery (threshold alerts, digests, manual messages)
- Watcher tick outcomes and latency
- Dedup store size
- Scheduler job status

Usage:
    from bosswatch.observability.metrics import (
        NOTIFICATIONS_SENT,
        TICK_DURATION,
    )

    # Increment counter
    NOTIFICATIONS_SENT.labels(kind="threshold", status="success").inc()

    # Track histogram
    with TICK_DURATION.time():
        await watcher.tick()

Metrics are exposed via /metrics endpoint in the health server.
"""

from typing import Any, Optional
from prometheus_client import (
    Counter,
    Gauge,
    Histogram,
    CollectorRegistry,
    generate_latest,
    CONTENT_TYPE_LATEST,
)

# Custom registry to avoid conflicts with default registry
REGISTRY = CollectorRegistry(auto_describe=True)

# =============================================================================
# COUNTERS - Monotonically increasing values
# =============================================================================

NOTIFICATIONS_SENT = Counter(
    name="bosswatch_notifications_total",
    documentation="Total notification delivery attempts",
    labelnames=["kind", "status"],  # threshold/digest/manual, success/failed
    registry=REGISTRY,
)

WATCHER_TICKS = Counter(
    name="bosswatch_watcher_ticks_total",
    documentation="Total respawn watcher ticks",
    labelnames=["status"],  # success, aborted
    registry=REGISTRY,
)

BOSSES_SKIPPED = Counter(
    name="bosswatch_bosses_skipped_total",
    documentation="Bosses skipped because of an unusable respawn period",
    registry=REGISTRY,
)

# =============================================================================
# GAUGES - Values that can go up and down
# =============================================================================

DEDUP_RECORDS = Gauge(
    name="bosswatch_dedup_records",
    documentation="Notification records currently held for deduplication",
    registry=REGISTRY,
)

TRACKED_BOSSES = Gauge(
    name="bosswatch_tracked_bosses",
    documentation="Bosses evaluated on the last tick",
    registry=REGISTRY,
)

SCHEDULER_JOBS = Gauge(
    name="bosswatch_scheduler_jobs",
    documentation="Number of scheduled jobs",
    labelnames=["status"],  # pending, running
    registry=REGISTRY,
)

# =============================================================================
# HISTOGRAMS - Distribution of values
# =============================================================================

TICK_DURATION = Histogram(
    name="bosswatch_tick_duration_seconds",
    documentation="Respawn watcher tick duration in seconds",
    buckets=(0.01, 0.05, 0.1, 0.5, 1, 2, 5, 10, 30, float("inf")),
    registry=REGISTRY,
)

WEBHOOK_DURATION = Histogram(
    name="bosswatch_webhook_duration_seconds",
    documentation="Discord webhook request duration in seconds",
    labelnames=["kind"],
    buckets=(0.1, 0.25, 0.5, 1, 2, 5, 10, float("inf")),
    registry=REGISTRY,
)


# =============================================================================
# UTILITY FUNCTIONS
# =============================================================================


def get_metrics_text() -> bytes:
    """Generate Prometheus metrics in text format.

    Returns:
        UTF-8 encoded metrics in Prometheus exposition format.
    """
    return generate_latest(REGISTRY)


def get_metrics_content_type() -> str:
    """Get the content type for Prometheus metrics response."""
    return CONTENT_TYPE_LATEST


class MetricsContext:
    """Context manager for timing operations and updating metrics.

    Combines histogram timing with counter updates for common patterns.

    Example:
        with MetricsContext(
            histogram=WEBHOOK_DURATION.labels(kind="threshold"),
            success_counter=NOTIFICATIONS_SENT.labels(kind="threshold", status="success"),
            failure_counter=NOTIFICATIONS_SENT.labels(kind="threshold", status="failed"),
        ) as ctx:
            result = await post_webhook()
            if result.success:
                ctx.mark_success()
    """

    def __init__(
        self,
        histogram: Optional[Any] = None,
        success_counter: Optional[Any] = None,
        failure_counter: Optional[Any] = None,
    ):
        self._histogram = histogram
        self._success_counter = success_counter
        self._failure_counter = failure_counter
        self._timer: Any = None
        self._success = False

    def __enter__(self) -> "MetricsContext":
        """Start timing."""
        if self._histogram is not None:
            self._timer = self._histogram.time()
            self._timer.__enter__()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        """Stop timing and update counters."""
        if self._timer:
            self._timer.__exit__(exc_type, exc_val, exc_tb)

        if exc_type is None and self._success:
            if self._success_counter is not None:
                self._success_counter.inc()
        else:
            # Exception, or finished without being marked successful
            if self._failure_counter is not None:
                self._failure_counter.inc()

    def mark_success(self) -> None:
        """Mark the operation as successful."""
        self._success = True
