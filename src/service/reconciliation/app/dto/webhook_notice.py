"""
Provider-neutral notices a webhook envelope is classified into.

The ingestion pipeline only ever sees these types; PayPal and Stripe
translators live in the provider adapters.
"""

from typing import Optional, Union

import attrs

from src.service.reconciliation.domain.entity.order_entity import Capture, Order
from src.service.reconciliation.domain.entity.refund_entity import Refund


@attrs.define(frozen=True)
class CaptureNotice:
    """Money moved for an order (PayPal capture, Stripe payment intent succeeded)."""

    capture: Capture
    order_ref: Optional[str] = None  # unknown when the capture only links "up"
    merchant_ref: Optional[str] = None


@attrs.define(frozen=True)
class OrderCompletedNotice:
    """Checkout finished; `order` is set when the envelope already carries every line item."""

    order_ref: str
    order: Optional[Order] = None
    merchant_ref: Optional[str] = None


@attrs.define(frozen=True)
class RefundNotice:
    refund: Refund
    merchant_ref: Optional[str] = None


@attrs.define(frozen=True)
class UnhandledNotice:
    reason: str


WebhookNotice = Union[CaptureNotice, OrderCompletedNotice, RefundNotice, UnhandledNotice]


@attrs.define(frozen=True)
class ParsedWebhook:
    event_id: str
    event_type: str
    resource_type: str
    summary: str
    notice: WebhookNotice
