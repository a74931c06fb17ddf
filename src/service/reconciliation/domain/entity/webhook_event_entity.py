from datetime import datetime
from typing import Optional

import attrs

from src.service.reconciliation.domain.enum.payment_type import PaymentType
from src.service.reconciliation.domain.enum.webhook_event_status import WebhookEventStatus


@attrs.define
class WebhookEvent:
    """Audit row for one provider delivery; the raw body is kept even when processing fails."""

    id: str
    provider: PaymentType
    raw_body: str
    event_type: str = ''
    resource_type: str = ''
    summary: str = ''
    status: WebhookEventStatus = WebhookEventStatus.RECEIVED
    created_at: Optional[datetime] = None

    def with_status(self, status: WebhookEventStatus) -> 'WebhookEvent':
        return attrs.evolve(self, status=status)
