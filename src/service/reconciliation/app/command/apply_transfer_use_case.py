from typing import List, Optional

from opentelemetry import trace

from src.platform.database.unit_of_work import AbstractUnitOfWork
from src.platform.exception.exceptions import NotFoundError
from src.platform.logging.loguru_io import Logger
from src.platform.metrics.reconciliation_metrics import metrics
from src.service.reconciliation.app.dto.admin_dto import TransferResult
from src.service.reconciliation.domain.entity.transfer_request_entity import TransferRequest
from src.service.reconciliation.domain.reconciliation_error import SlotDecodeError, TransferError
from src.service.reconciliation.domain.value_object.slot_key import SlotKey, decode


class ApplyTransferUseCase:
    """
    Move sold line items to other slots

    Flow (one transaction for the whole batch):
    1. Lock the line item row and resolve its effective SKU (latest transfer wins)
    2. Reject refunded items and requests whose old_sku is stale
    3. Release capacity at the origin slot, consume it at the destination slot
    4. Append the transfer request to the log

    Any failure rolls the batch back; no ledger row moves unless every request applies.
    """

    def __init__(self, *, uow: AbstractUnitOfWork, enforce_floor: bool = False) -> None:
        self.uow = uow
        self.enforce_floor = enforce_floor
        self.tracer = trace.get_tracer(__name__)

    @staticmethod
    def _decode(sku: str, *, role: str) -> SlotKey:
        try:
            return decode(sku)
        except SlotDecodeError as e:
            raise TransferError(f'{role} SKU {sku!r} is not a slot') from e

    @Logger.io
    async def execute(
        self, *, requests: List[TransferRequest], merchant_ids: Optional[List[str]] = None
    ) -> List[TransferResult]:
        """
        Args:
            requests: Transfers to apply, in order (a later request may chain an earlier one)
            merchant_ids: Merchants the caller operates; other merchants' items are not found

        Returns:
            One result per request

        Raises:
            NotFoundError: Line item does not exist (or belongs to another merchant)
            TransferError: Refunded item, stale old_sku, non-slot SKU or insufficient capacity
        """
        if not requests:
            raise TransferError('No transfer requests given')

        with self.tracer.start_as_current_span(
            'use_case.apply_transfer', attributes={'transfer.count': len(requests)}
        ):
            async with self.uow:
                results = [
                    await self._apply_one(request=request, merchant_ids=merchant_ids)
                    for request in requests
                ]
                await self.uow.commit()

        Logger.base.info(f'🔁 [Transfer] Applied {len(results)} transfer(s)')
        return results

    async def _apply_one(
        self, *, request: TransferRequest, merchant_ids: Optional[List[str]]
    ) -> TransferResult:
        item = await self.uow.order_query_repo.get_line_item(
            line_item_id=request.line_item_id, for_update=True
        )
        if item is None:
            raise NotFoundError(f'Line item {request.line_item_id} not found')

        if merchant_ids is not None:
            order = await self.uow.order_query_repo.get_order(order_id=item.order_id)
            if order is None or order.merchant_id not in merchant_ids:
                raise NotFoundError(f'Line item {request.line_item_id} not found')

        if item.is_refunded:
            raise TransferError(f'Line item {item.id} was refunded')

        effective = await self.uow.transfer_request_repo.get_effective(line_item_id=item.id)
        current_sku = effective.new_sku if effective else item.sku
        if request.old_sku is not None and request.old_sku != current_sku:
            raise TransferError(
                f'Line item {item.id} is at {current_sku}, not {request.old_sku}'
            )

        origin = self._decode(current_sku, role='Current')
        destination = self._decode(request.new_sku, role='Destination')

        await self.uow.capacity_ledger_repo.increment(
            product_id=origin.product_id, trip_instant=origin.trip_instant, quantity=item.quantity
        )
        if self.enforce_floor:
            taken = await self.uow.capacity_ledger_repo.decrement_if_available(
                product_id=destination.product_id,
                trip_instant=destination.trip_instant,
                quantity=item.quantity,
            )
            if not taken:
                raise TransferError(
                    f'Slot {request.new_sku} has fewer than {item.quantity} seats left'
                )
        else:
            await self.uow.capacity_ledger_repo.decrement(
                product_id=destination.product_id,
                trip_instant=destination.trip_instant,
                quantity=item.quantity,
            )

        await self.uow.transfer_request_repo.append(
            transfer_request=request.applied(old_sku=current_sku)
        )
        metrics.record_ledger_adjustment(reason='transfer', direction='in', quantity=item.quantity)
        metrics.record_ledger_adjustment(reason='transfer', direction='out', quantity=item.quantity)

        return TransferResult(
            line_item_id=item.id,
            old_sku=current_sku,
            new_sku=request.new_sku,
            quantity=item.quantity,
        )
