from typing import List, Optional

import attrs

from src.platform.exception.exceptions import DomainError
from src.service.reconciliation.domain.enum.ingest_outcome import IngestOutcome


@attrs.define(frozen=True)
class RefundRequest:
    line_item_ids: List[str]

    def __attrs_post_init__(self) -> None:
        if not self.line_item_ids:
            raise DomainError('At least one line item is required for a refund')


@attrs.define(frozen=True)
class RefundConfirmation:
    refund_ids: List[str]
    refunded_line_item_ids: List[str]
    status: str


@attrs.define(frozen=True)
class ManualEntry:
    """Out-of-band sale (phone, walk-up) recorded like a provider sale."""

    product_id: int
    timestamp: int  # trip epoch seconds
    ticket_type: str
    quantity: int
    entry_type: str = 'phone'
    description: str = ''
    name: str = ''
    email: str = ''
    phone: str = ''
    unit_amount: str = '0'

    def __attrs_post_init__(self) -> None:
        if self.quantity <= 0:
            raise DomainError('quantity must be positive')
        if not self.ticket_type:
            raise DomainError('ticket_type is required')


@attrs.define(frozen=True)
class TransferResult:
    line_item_id: str
    old_sku: str
    new_sku: str
    quantity: int


@attrs.define(frozen=True)
class WebhookResult:
    event_id: str
    outcome: IngestOutcome
    order_id: Optional[str] = None
