"""
Reconciliation Recorder

The single write path from "a provider says money moved" to the capacity ledger.
Webhook ingestion, operator captures, refunds and manual entries all record
through here, so a sale is decremented exactly once whichever path saw it first.

Works inside the caller's unit of work and never commits.
"""

from typing import List, Tuple

from src.platform.database.unit_of_work import AbstractUnitOfWork
from src.platform.logging.loguru_io import Logger
from src.platform.metrics.reconciliation_metrics import metrics
from src.service.reconciliation.domain.entity.order_entity import Capture, LineItem, Order
from src.service.reconciliation.domain.entity.refund_entity import Refund
from src.service.reconciliation.domain.enum.ingest_outcome import IngestOutcome
from src.service.reconciliation.domain.enum.order_status import OrderStatus
from src.service.reconciliation.domain.reconciliation_error import CapacityError
from src.service.reconciliation.domain.value_object.slot_key import decode, is_slot_item


class ReconciliationRecorder:
    def __init__(self, *, uow: AbstractUnitOfWork) -> None:
        self.uow = uow

    @Logger.io
    async def record_sale(
        self, *, order: Order, reason: str = 'sale', enforce_floor: bool = False
    ) -> IngestOutcome:
        """
        Persist the order, its line items and captures; consume capacity for a new order

        Args:
            order: Fully hydrated order
            reason: Metrics label of the ledger adjustment
            enforce_floor: Refuse the sale instead of overselling a slot

        Returns:
            APPLIED when this call created the order (new captures of a known order are
            recorded but report ALREADY_PROCESSED)

        Raises:
            CapacityError: enforce_floor is set and a slot lacks capacity
        """
        order_outcome = await self.uow.order_command_repo.insert_order_if_absent(order=order)

        if order_outcome == IngestOutcome.APPLIED:
            for item, slot in order.slot_items():
                if enforce_floor:
                    taken = await self.uow.capacity_ledger_repo.decrement_if_available(
                        product_id=slot.product_id,
                        trip_instant=slot.trip_instant,
                        quantity=item.quantity,
                    )
                    if not taken:
                        raise CapacityError(
                            f'Slot {slot.to_sku()} has fewer than {item.quantity} seats left'
                        )
                else:
                    await self.uow.capacity_ledger_repo.decrement(
                        product_id=slot.product_id,
                        trip_instant=slot.trip_instant,
                        quantity=item.quantity,
                    )
                metrics.record_ledger_adjustment(
                    reason=reason, direction='out', quantity=item.quantity
                )
            Logger.base.info(
                f'🎫 [Ledger] Order {order.id} recorded, '
                f'{len(order.slot_items())} slot item(s) consumed'
            )
        else:
            await self.advance_order_status(order_id=order.id, status=order.status)

        for capture in order.captures:
            await self.record_capture(capture=capture)
        return order_outcome

    @Logger.io
    async def record_capture(self, *, capture: Capture) -> IngestOutcome:
        return await self.uow.order_command_repo.insert_capture_if_absent(capture=capture)

    @Logger.io
    async def advance_order_status(self, *, order_id: str, status: OrderStatus) -> None:
        """Move a stored order forward (created -> captured -> refunded), never back."""
        stored = await self.uow.order_query_repo.get_order(order_id=order_id)
        if stored is not None and stored.advance_to(status) is not stored:
            await self.uow.order_command_repo.update_order_status(
                order_id=order_id, status=status
            )

    @Logger.io
    async def record_refund(
        self, *, refund: Refund, order: Order
    ) -> Tuple[IngestOutcome, List[LineItem]]:
        """
        Release the refunded line items back to the ledger at their effective slot

        Returns:
            The dedup outcome and the line items this refund released
        """
        outcome = await self.uow.order_command_repo.insert_refund_if_absent(refund=refund)
        if outcome != IngestOutcome.APPLIED:
            return IngestOutcome.ALREADY_PROCESSED, []

        items = await self.uow.order_query_repo.list_active_line_items(
            order_id=order.id, for_update=True
        )
        items = [item for item in items if refund.covers(item)]

        await self.uow.order_command_repo.mark_line_items_refunded(
            line_item_ids=[item.id for item in items]
        )

        effective = await self.uow.transfer_request_repo.get_effective_many(
            line_item_ids=[item.id for item in items]
        )
        for item in items:
            transfer = effective.get(item.id)
            sku = transfer.new_sku if transfer else item.sku
            name = (transfer.new_name or item.name) if transfer else item.name
            if not is_slot_item(sku, name):
                continue
            slot = decode(sku)
            await self.uow.capacity_ledger_repo.increment(
                product_id=slot.product_id, trip_instant=slot.trip_instant, quantity=item.quantity
            )
            metrics.record_ledger_adjustment(
                reason='refund', direction='in', quantity=item.quantity
            )

        remaining = await self.uow.order_query_repo.list_active_line_items(order_id=order.id)
        if not remaining:
            if refund.capture_id:
                await self.uow.order_command_repo.mark_capture_refunded(
                    capture_id=refund.capture_id
                )
            await self.uow.order_command_repo.update_order_status(
                order_id=order.id, status=OrderStatus.REFUNDED
            )

        Logger.base.info(
            f'💸 [Ledger] Refund {refund.id} released {len(items)} item(s) of order {order.id}'
        )
        return IngestOutcome.APPLIED, [item.mark_refunded() for item in items]
