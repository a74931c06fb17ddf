"""Reconciliation Domain Enums"""

from src.service.reconciliation.domain.enum.ingest_outcome import IngestOutcome
from src.service.reconciliation.domain.enum.order_status import (
    CaptureStatus,
    LineItemStatus,
    OrderStatus,
)
from src.service.reconciliation.domain.enum.payment_type import PaymentType
from src.service.reconciliation.domain.enum.webhook_event_status import WebhookEventStatus

__all__ = [
    'CaptureStatus',
    'IngestOutcome',
    'LineItemStatus',
    'OrderStatus',
    'PaymentType',
    'WebhookEventStatus',
]
