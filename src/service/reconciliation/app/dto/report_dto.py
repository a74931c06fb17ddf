from datetime import datetime
from decimal import Decimal
from typing import List, Optional

import attrs

from src.service.reconciliation.domain.entity.order_entity import Payer
from src.service.reconciliation.domain.enum.order_status import LineItemStatus, OrderStatus


@attrs.define(frozen=True)
class LineItemView:
    """A line item joined with its order and its effective (post-transfer) SKU."""

    line_item_id: str
    order_id: str
    merchant_id: str
    sku: str
    name: str
    original_sku: str
    original_name: str
    quantity: int
    unit_amount: Decimal
    description: str
    status: LineItemStatus
    order_status: OrderStatus
    channel: str
    payer: Payer
    created_at: Optional[datetime] = None

    @property
    def is_refunded(self) -> bool:
        return self.status == LineItemStatus.REFUNDED or self.order_status == OrderStatus.REFUNDED


@attrs.define(frozen=True)
class SoldTickets:
    product_id: int
    trip_instant: datetime
    quantity: int


@attrs.define(frozen=True)
class OrderSummary:
    line_item_id: str
    order_id: str
    sku: str
    name: str
    original_sku: str
    original_name: str
    quantity: int
    status: str
    channel: str
    payer_name: str
    payer_email: str
    payer_phone: str
    created_at: Optional[datetime] = None


@attrs.define(frozen=True)
class PassItem:
    line_item_id: str
    sku: str
    name: str
    description: str
    quantity: int


@attrs.define(frozen=True)
class PassBundle:
    order_id: str
    items: List[PassItem]
    payer_name: str
    payer_email: str
