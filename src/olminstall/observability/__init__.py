"""olminstall observability package.

Logging and metrics for installations.
"""

from olminstall.observability.logging import (
    LogContext,
    add_context,
    clear_context,
    configure_logging,
    get_logger,
)
from olminstall.observability.metrics import MetricsCollector, get_metrics

__all__ = [
    "LogContext",
    "MetricsCollector",
    "add_context",
    "clear_context",
    "configure_logging",
    "get_logger",
    "get_metrics",
]
