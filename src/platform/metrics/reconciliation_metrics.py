from prometheus_client import Counter, Histogram


class ReconciliationMetrics:
    """
    Reconciliation Engine Core Metrics Collector

    Tracks webhook ingestion outcomes, ledger adjustments and remote provider calls
    """

    def __init__(self):
        # ========== Webhook Ingestion Metrics ==========
        self.webhook_events = Counter(
            'webhook_events_total',
            'Webhook deliveries by final audit status',
            ['provider', 'status'],  # status: a WebhookEventStatus value
        )

        self.webhook_duration = Histogram(
            'webhook_processing_duration_seconds',
            'Webhook processing duration',
            ['provider'],
            buckets=[0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
        )

        # ========== Capacity Ledger Metrics ==========
        self.ledger_adjustments = Counter(
            'ledger_adjustments_total',
            'Seats moved through the capacity ledger',
            ['reason', 'direction'],  # reason: sale/refund/transfer/manual, direction: in/out
        )

        # ========== Provider API Metrics ==========
        self.provider_failures = Counter(
            'provider_dependency_failures_total',
            'Remote payment API failures surfaced as 424',
            ['provider'],
        )

    # ========== Helper Methods ==========

    def record_webhook(self, *, provider: str, status: str, duration: float | None = None):
        self.webhook_events.labels(provider=provider, status=status).inc()
        if duration is not None:
            self.webhook_duration.labels(provider=provider).observe(duration)

    def record_ledger_adjustment(self, *, reason: str, direction: str, quantity: int):
        self.ledger_adjustments.labels(reason=reason, direction=direction).inc(quantity)

    def record_provider_failure(self, *, provider: str):
        self.provider_failures.labels(provider=provider).inc()


# Global metrics instance
metrics = ReconciliationMetrics()
