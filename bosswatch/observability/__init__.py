"""Observability for the respawn watcher.

Provides:
- Correlation ID context management for job tracing
- Structured logging with context propagation
- Prometheus metrics for monitoring and alerting

Usage:
    from bosswatch.observability import (
        correlation_id_context,
        get_logger,
        NOTIFICATIONS_SENT,
    )
"""

from bosswatch.observability.context import (
    set_correlation_id,
    get_correlation_id,
    clear_correlation_id,
    correlation_id_context,
)
from bosswatch.observability.logging import (
    get_logger,
    configure_logging,
    add_correlation_id_processor,
    bind_context,
    clear_context,
)
from bosswatch.observability.metrics import (
    # Counters
    NOTIFICATIONS_SENT,
    WATCHER_TICKS,
    BOSSES_SKIPPED,
    # Gauges
    DEDUP_RECORDS,
    TRACKED_BOSSES,
    SCHEDULER_JOBS,
    # Histograms
    TICK_DURATION,
    WEBHOOK_DURATION,
    # Utilities
    get_metrics_text,
    get_metrics_content_type,
    MetricsContext,
)

__all__ = [
    # Context
    "set_correlation_id",
    "get_correlation_id",
    "clear_correlation_id",
    "correlation_id_context",
    # Logging
    "get_logger",
    "configure_logging",
    "add_correlation_id_processor",
    "bind_context",
    "clear_context",
    # Counters
    "NOTIFICATIONS_SENT",
    "WATCHER_TICKS",
    "BOSSES_SKIPPED",
    # Gauges
    "DEDUP_RECORDS",
    "TRACKED_BOSSES",
    "SCHEDULER_JOBS",
    # Histograms
    "TICK_DURATION",
    "WEBHOOK_DURATION",
    # Utilities
    "get_metrics_text",
    "get_metrics_content_type",
    "MetricsContext",
]
