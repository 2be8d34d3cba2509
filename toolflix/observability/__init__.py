"""
Observability module - Logging, Metrics, and Tracing.
"""

from toolflix.observability.logging import get_logger, setup_logging
from toolflix.observability.metrics import metrics
from toolflix.observability.tracing import setup_tracing

__all__ = [
    "get_logger",
    "setup_logging",
    "metrics",
    "setup_tracing",
]
