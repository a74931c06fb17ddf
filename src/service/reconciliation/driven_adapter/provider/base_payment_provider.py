"""
Provider-neutral half of the payment provider adapters

Reports, transfers, manual entries and the local side of captures and refunds
read and write only our own tables, so PayPal and Stripe share them. The
subclasses add the remote calls and the webhook translation.
"""

from collections import defaultdict
from datetime import datetime
from decimal import Decimal
import re
from typing import Dict, List, Optional, Tuple

import uuid_utils

from src.platform.database.unit_of_work import AbstractUnitOfWork
from src.platform.exception.exceptions import DomainError, NotFoundError
from src.platform.logging.loguru_io import Logger
from src.service.reconciliation.app.command.apply_transfer_use_case import ApplyTransferUseCase
from src.service.reconciliation.app.command.reconciliation_recorder import ReconciliationRecorder
from src.service.reconciliation.app.dto.admin_dto import (
    ManualEntry,
    RefundRequest,
    TransferResult,
)
from src.service.reconciliation.app.dto.report_dto import (
    LineItemView,
    OrderSummary,
    PassBundle,
    PassItem,
    SoldTickets,
)
from src.service.reconciliation.app.interface.i_payment_provider import IPaymentProvider
from src.service.reconciliation.domain.entity.merchant_config_entity import MerchantConfig
from src.service.reconciliation.domain.entity.order_entity import (
    Capture,
    LineItem,
    Order,
    Payer,
)
from src.service.reconciliation.domain.entity.refund_entity import Refund
from src.service.reconciliation.domain.entity.transfer_request_entity import TransferRequest
from src.service.reconciliation.domain.enum.ingest_outcome import IngestOutcome
from src.service.reconciliation.domain.enum.order_status import CaptureStatus, OrderStatus
from src.service.reconciliation.domain.value_object.slot_key import (
    SlotKey,
    encode,
    from_epoch,
    is_slot_item,
    try_decode,
)


# "<Adult> Ticket, <Sat Nov 4 10:00>, <Sunset cruise>" carries the description in its tail
_TICKET_NAME_DESCRIPTION = re.compile(r'\w* Ticket, [^,]*, (.*)')


def derive_pass_description(name: str, description: str) -> str:
    if description:
        return description
    match = _TICKET_NAME_DESCRIPTION.search(name or '')
    return match.group(1) if match else ''


def _view_slot(view: LineItemView) -> Optional[SlotKey]:
    if not is_slot_item(view.sku, view.name):
        return None
    return try_decode(view.sku)


class BasePaymentProvider(IPaymentProvider):
    def __init__(self, *, uow: AbstractUnitOfWork, enforce_floor: bool = False) -> None:
        self.uow = uow
        self.enforce_floor = enforce_floor
        self.recorder = ReconciliationRecorder(uow=uow)

    def merchant_ids(self, config: MerchantConfig) -> List[str]:
        """Merchant ids whose orders count as this merchant's."""
        return [config.id]

    async def settle_sale(self, *, order: Order, config: MerchantConfig) -> None:
        return None

    async def _line_item_views(
        self, *, config: MerchantConfig, order_id: Optional[str] = None
    ) -> List[LineItemView]:
        async with self.uow:
            return await self.uow.order_query_repo.list_line_item_views(
                merchant_ids=self.merchant_ids(config), order_id=order_id
            )

    async def _load_order(self, *, config: MerchantConfig, order_id: str) -> Order:
        async with self.uow:
            order = await self.uow.order_query_repo.get_order(order_id=order_id)
        if order is None or order.merchant_id not in self.merchant_ids(config):
            raise NotFoundError(f'Order {order_id} not found')
        return order

    async def _load_refund_order(self, *, config: MerchantConfig, request: RefundRequest) -> Order:
        """The order the first requested line item belongs to; the rest must share it."""
        async with self.uow:
            item = await self.uow.order_query_repo.get_line_item(
                line_item_id=request.line_item_ids[0]
            )
        if item is None:
            raise NotFoundError(f'Line item {request.line_item_ids[0]} not found')
        return await self._load_order(config=config, order_id=item.order_id)

    async def _record_sale(self, *, order: Order) -> IngestOutcome:
        async with self.uow:
            outcome = await self.recorder.record_sale(order=order)
            await self.uow.commit()
        return outcome

    async def _record_refund(
        self, *, refund: Refund, order: Order
    ) -> Tuple[IngestOutcome, List[LineItem]]:
        async with self.uow:
            result = await self.recorder.record_refund(refund=refund, order=order)
            await self.uow.commit()
        return result

    @staticmethod
    def _select_refund_items(order: Order, line_item_ids: List[str]) -> List[LineItem]:
        by_id = {item.id: item for item in order.line_items}
        selected = []
        for line_item_id in dict.fromkeys(line_item_ids):
            item = by_id.get(line_item_id)
            if item is None:
                raise NotFoundError(f'Line item {line_item_id} not found on order {order.id}')
            if item.is_refunded:
                raise DomainError(f'Line item {line_item_id} is already refunded')
            selected.append(item)
        return selected

    @staticmethod
    def _completed_capture(order: Order) -> Capture:
        for capture in order.captures:
            if capture.status != CaptureStatus.REFUNDED:
                return capture
        raise DomainError(f'Order {order.id} has no refundable capture')

    # ---- reports ----

    @Logger.io
    async def fetch_sold_tickets(
        self, *, config: MerchantConfig, from_instant: datetime, to_instant: datetime
    ) -> List[SoldTickets]:
        totals: Dict[Tuple[int, datetime], int] = defaultdict(int)
        for view in await self._line_item_views(config=config):
            if view.is_refunded:
                continue
            slot = _view_slot(view)
            if slot is None or not from_instant <= slot.trip_instant <= to_instant:
                continue
            totals[(slot.product_id, slot.trip_instant)] += view.quantity

        return [
            SoldTickets(product_id=product_id, trip_instant=trip_instant, quantity=quantity)
            for (product_id, trip_instant), quantity in sorted(
                totals.items(), key=lambda entry: (entry[0][1], entry[0][0])
            )
        ]

    @Logger.io
    async def fetch_orders_at_slot(
        self, *, config: MerchantConfig, trip_instant: datetime
    ) -> List[OrderSummary]:
        summaries = []
        for view in await self._line_item_views(config=config):
            slot = _view_slot(view)
            if slot is None or slot.trip_instant != trip_instant:
                continue
            summaries.append(
                OrderSummary(
                    line_item_id=view.line_item_id,
                    order_id=view.order_id,
                    sku=view.sku,
                    name=view.name,
                    original_sku=view.original_sku,
                    original_name=view.original_name,
                    quantity=view.quantity,
                    status='refunded' if view.is_refunded else 'active',
                    channel=view.channel,
                    payer_name=view.payer.name,
                    payer_email=view.payer.email,
                    payer_phone=view.payer.phone,
                    created_at=view.created_at,
                )
            )
        return summaries

    @Logger.io
    async def fetch_pass_items(self, *, config: MerchantConfig, order_id: str) -> PassBundle:
        views = await self._line_item_views(config=config, order_id=order_id)
        if not views:
            raise NotFoundError(f'Order {order_id} not found')

        items = [
            PassItem(
                line_item_id=view.line_item_id,
                sku=view.sku,
                name=view.name,
                description=derive_pass_description(view.name, view.description),
                quantity=view.quantity,
            )
            for view in views
            if not view.is_refunded and _view_slot(view) is not None
        ]
        payer = views[0].payer
        return PassBundle(
            order_id=order_id, items=items, payer_name=payer.name, payer_email=payer.email
        )

    # ---- operator writes ----

    @Logger.io
    async def transfer(
        self, *, config: MerchantConfig, requests: List[TransferRequest]
    ) -> List[TransferResult]:
        use_case = ApplyTransferUseCase(uow=self.uow, enforce_floor=self.enforce_floor)
        return await use_case.execute(requests=requests, merchant_ids=self.merchant_ids(config))

    @Logger.io
    async def manual_entry(self, *, config: MerchantConfig, entry: ManualEntry) -> Order:
        order_id = str(uuid_utils.uuid7())
        trip_instant = from_epoch(entry.timestamp)
        sku = encode(entry.product_id, entry.ticket_type, trip_instant)
        order = Order.create(
            id=order_id,
            merchant_id=config.id,
            provider=self.payment_type,
            status=OrderStatus.CAPTURED,
            payer=Payer(name=entry.name, email=entry.email, phone=entry.phone),
            line_items=[
                LineItem(
                    id=f'{order_id}-0',
                    order_id=order_id,
                    sku=sku,
                    name=f'{entry.ticket_type.upper()} Ticket',
                    quantity=entry.quantity,
                    unit_amount=Decimal(entry.unit_amount),
                    description=entry.description,
                )
            ],
            channel=f'manual:{entry.entry_type}',
        )

        async with self.uow:
            await self.recorder.record_sale(
                order=order, reason='manual', enforce_floor=self.enforce_floor
            )
            await self.uow.commit()

        Logger.base.info(
            f'📝 [Manual] {entry.entry_type} entry {order_id} -> {sku} x{entry.quantity}'
        )
        return order
