from datetime import datetime
from decimal import Decimal
from typing import Optional, Tuple

import attrs

from src.service.reconciliation.domain.entity.order_entity import LineItem


@attrs.define(frozen=True)
class Refund:
    """
    A provider refund of (part of) a capture.

    `line_item_ids` scopes the refund to specific tickets; empty means every
    line item of the order that is not refunded yet. Entries are either full
    line item ids or a position within the order (`0-1` for `<order>-0-1`),
    the compact form PayPal refunds carry in their 127-character custom_id.
    """

    id: str
    capture_id: Optional[str]
    order_id: Optional[str] = None
    status: str = 'completed'
    amount: Decimal = Decimal('0')
    line_item_ids: Tuple[str, ...] = ()
    created_at: Optional[datetime] = None

    def covers(self, item: LineItem) -> bool:
        if not self.line_item_ids:
            return True
        position = item.id.removeprefix(f'{item.order_id}-')
        return item.id in self.line_item_ids or position in self.line_item_ids
