from datetime import datetime
from decimal import Decimal
from typing import List, Optional

import attrs

from src.platform.exception.exceptions import DomainError
from src.service.reconciliation.domain.enum.order_status import (
    CaptureStatus,
    LineItemStatus,
    OrderStatus,
)
from src.service.reconciliation.domain.enum.payment_type import PaymentType
from src.service.reconciliation.domain.value_object.slot_key import (
    SlotKey,
    is_slot_item,
    try_decode,
)


@attrs.define(frozen=True)
class Payer:
    payer_id: Optional[str] = None
    name: str = ''
    email: str = ''
    phone: str = ''


@attrs.define
class LineItem:
    id: str
    order_id: str
    sku: str
    name: str
    quantity: int
    unit_amount: Decimal = Decimal('0')
    description: str = ''
    status: LineItemStatus = LineItemStatus.ACTIVE

    @property
    def slot(self) -> Optional[SlotKey]:
        """Slot of the SKU as sold; transfers may have moved it since (see effective SKU)."""
        if not is_slot_item(self.sku, self.name):
            return None
        return try_decode(self.sku)

    @property
    def is_refunded(self) -> bool:
        return self.status == LineItemStatus.REFUNDED

    def mark_refunded(self) -> 'LineItem':
        return attrs.evolve(self, status=LineItemStatus.REFUNDED)


@attrs.define
class Capture:
    id: str
    order_id: str
    status: CaptureStatus = CaptureStatus.COMPLETED
    amount: Decimal = Decimal('0')
    currency: str = 'USD'
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def mark_refunded(self) -> 'Capture':
        return attrs.evolve(self, status=CaptureStatus.REFUNDED)


@attrs.define
class Order:
    id: str
    merchant_id: str
    provider: PaymentType
    status: OrderStatus = OrderStatus.CREATED
    payer: Payer = attrs.field(factory=Payer)
    line_items: List[LineItem] = attrs.field(factory=list)
    captures: List[Capture] = attrs.field(factory=list)
    channel: str = 'online'
    created_at: Optional[datetime] = None

    @classmethod
    def create(
        cls,
        *,
        id: str,
        merchant_id: str,
        provider: PaymentType,
        status: OrderStatus = OrderStatus.CREATED,
        payer: Optional[Payer] = None,
        line_items: Optional[List[LineItem]] = None,
        captures: Optional[List[Capture]] = None,
        channel: str = 'online',
        created_at: Optional[datetime] = None,
    ) -> 'Order':
        if not id:
            raise DomainError('Order id is required')
        for item in line_items or []:
            if item.quantity <= 0:
                raise DomainError(f'Line item {item.id} has non-positive quantity')
            if item.order_id != id:
                raise DomainError(f'Line item {item.id} belongs to order {item.order_id}')
        return cls(
            id=id,
            merchant_id=merchant_id,
            provider=provider,
            status=status,
            payer=payer or Payer(),
            line_items=list(line_items or []),
            captures=list(captures or []),
            channel=channel,
            created_at=created_at,
        )

    def advance_to(self, status: OrderStatus) -> 'Order':
        """Move forward through created -> captured -> refunded; never backwards."""
        if status.rank <= self.status.rank:
            return self
        return attrs.evolve(self, status=status)

    def slot_items(self) -> List[tuple[LineItem, SlotKey]]:
        return [(item, slot) for item in self.line_items if (slot := item.slot) is not None]
