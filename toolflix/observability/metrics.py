"""
Metrics Collection with Prometheus.

Exposes business and system metrics for monitoring.
"""

from enum import Enum

from prometheus_client import Counter, Gauge, Histogram, Info

from toolflix.config import settings


class MetricLabels(str, Enum):
    """Standard metric label names."""

    ENDPOINT = "endpoint"
    METHOD = "method"
    STATUS_CODE = "status_code"
    OPERATION = "operation"
    OUTCOME = "outcome"
    SENDER = "sender"
    ERROR_TYPE = "error_type"


class ToolflixMetrics:
    """
    Centralized metrics for the ToolFlix API.

    Covers:
    - HTTP requests (rate, duration, errors)
    - Token issuance and redemption outcomes
    - Premium grants
    - Chat sessions, messages, rate limiting and sweeps
    """

    def __init__(self) -> None:
        """Initialize all Prometheus metrics."""

        # ====================================================================
        # Service Info
        # ====================================================================
        self.service_info = Info(
            "toolflix_service",
            "Service information",
        )
        self.service_info.info(
            {
                "version": settings.api_version,
                "service_name": settings.service_name,
            }
        )

        # ====================================================================
        # HTTP Metrics
        # ====================================================================
        self.http_requests_total = Counter(
            "toolflix_http_requests_total",
            "Total HTTP requests",
            [MetricLabels.ENDPOINT, MetricLabels.METHOD, MetricLabels.STATUS_CODE],
        )

        self.http_request_duration_seconds = Histogram(
            "toolflix_http_request_duration_seconds",
            "HTTP request duration in seconds",
            [MetricLabels.ENDPOINT, MetricLabels.METHOD],
            buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0),
        )

        self.http_requests_in_progress = Gauge(
            "toolflix_http_requests_in_progress",
            "Number of HTTP requests currently being processed",
            [MetricLabels.ENDPOINT, MetricLabels.METHOD],
        )

        # ====================================================================
        # Token / Premium Metrics
        # ====================================================================
        self.tokens_issued_total = Counter(
            "toolflix_tokens_issued_total",
            "Total premium tokens issued",
        )

        self.token_redemptions_total = Counter(
            "toolflix_token_redemptions_total",
            "Token redemption attempts by outcome",
            [MetricLabels.OUTCOME],
        )

        self.premium_grants_total = Counter(
            "toolflix_premium_grants_total",
            "Premium grants created (first redemption per user)",
        )

        # ====================================================================
        # Chat Metrics
        # ====================================================================
        self.chats_created_total = Counter(
            "toolflix_chats_created_total",
            "Chat sessions opened",
        )

        self.chat_messages_total = Counter(
            "toolflix_chat_messages_total",
            "Chat messages appended",
            [MetricLabels.SENDER],
        )

        self.chat_rate_limited_total = Counter(
            "toolflix_chat_rate_limited_total",
            "User chat messages rejected by the rate limit",
        )

        self.chat_sweep_deleted_total = Counter(
            "toolflix_chat_sweep_deleted_total",
            "Rows deleted by the expired chat sweep",
            ["table"],
        )

        # ====================================================================
        # Error Metrics
        # ====================================================================
        self.errors_total = Counter(
            "toolflix_errors_total",
            "Total errors by type",
            [MetricLabels.ERROR_TYPE, MetricLabels.OPERATION],
        )

    # ========================================================================
    # Helper Methods
    # ========================================================================

    def record_http_request(
        self, endpoint: str, method: str, status_code: int, duration: float
    ) -> None:
        """Record HTTP request metrics."""
        self.http_requests_total.labels(
            endpoint=endpoint, method=method, status_code=status_code
        ).inc()
        self.http_request_duration_seconds.labels(endpoint=endpoint, method=method).observe(
            duration
        )

    def record_redemption(self, outcome: str) -> None:
        """Record a token redemption attempt ("valid" or the failure code)."""
        self.token_redemptions_total.labels(outcome=outcome).inc()

    def record_chat_message(self, sender: str) -> None:
        """Record an appended chat message."""
        self.chat_messages_total.labels(sender=sender).inc()

    def record_sweep(self, chats_deleted: int, messages_deleted: int) -> None:
        """Record rows removed by a sweep."""
        if chats_deleted:
            self.chat_sweep_deleted_total.labels(table="chats").inc(chats_deleted)
        if messages_deleted:
            self.chat_sweep_deleted_total.labels(table="chat_messages").inc(messages_deleted)

    def record_error(self, error_type: str, operation: str) -> None:
        """Record error occurrence."""
        self.errors_total.labels(error_type=error_type, operation=operation).inc()


# Global metrics instance
metrics = ToolflixMetrics()
