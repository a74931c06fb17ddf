"""
Order Command Repository Implementation

Orders, captures and refunds are keyed by the provider's ids, so a redelivered
webhook collides on the primary key and becomes a no-op.
"""

from typing import List

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from src.platform.database.orm_db_setting import dialect_insert
from src.platform.logging.loguru_io import Logger
from src.service.reconciliation.app.interface.i_order_command_repo import IOrderCommandRepo
from src.service.reconciliation.domain.entity.order_entity import Capture, Order
from src.service.reconciliation.domain.entity.refund_entity import Refund
from src.service.reconciliation.domain.enum.ingest_outcome import IngestOutcome
from src.service.reconciliation.domain.enum.order_status import (
    CaptureStatus,
    LineItemStatus,
    OrderStatus,
)
from src.service.reconciliation.driven_adapter.model.order_model import (
    CaptureModel,
    LineItemModel,
    OrderModel,
)
from src.service.reconciliation.driven_adapter.model.refund_model import RefundModel


class OrderCommandRepoImpl(IOrderCommandRepo):
    def __init__(self, *, session: AsyncSession) -> None:
        self.session = session

    async def _insert_if_absent(self, model: type, values: dict) -> IngestOutcome:
        stmt = (
            dialect_insert(self.session, model)
            .values(**values)
            .on_conflict_do_nothing(index_elements=['id'])
            .returning(model.id)  # type: ignore[attr-defined]
        )
        result = await self.session.execute(stmt)
        if result.scalar_one_or_none() is None:
            return IngestOutcome.ALREADY_PROCESSED
        return IngestOutcome.APPLIED

    @Logger.io
    async def insert_order_if_absent(self, *, order: Order) -> IngestOutcome:
        values = {
            'id': order.id,
            'merchant_id': order.merchant_id,
            'provider': str(order.provider),
            'status': str(order.status),
            'channel': order.channel,
            'payer_id': order.payer.payer_id,
            'payer_name': order.payer.name,
            'payer_email': order.payer.email,
            'payer_phone': order.payer.phone,
        }
        if order.created_at is not None:
            values['created_at'] = order.created_at

        outcome = await self._insert_if_absent(OrderModel, values)
        if outcome == IngestOutcome.APPLIED and order.line_items:
            await self.session.execute(
                dialect_insert(self.session, LineItemModel)
                .values(
                    [
                        {
                            'id': item.id,
                            'order_id': order.id,
                            'sku': item.sku,
                            'name': item.name,
                            'quantity': item.quantity,
                            'unit_amount': item.unit_amount,
                            'description': item.description,
                            'status': str(item.status),
                        }
                        for item in order.line_items
                    ]
                )
                .on_conflict_do_nothing(index_elements=['id'])
            )
        return outcome

    @Logger.io
    async def insert_capture_if_absent(self, *, capture: Capture) -> IngestOutcome:
        values = {
            'id': capture.id,
            'order_id': capture.order_id,
            'status': str(capture.status),
            'amount': capture.amount,
            'currency': capture.currency,
        }
        if capture.created_at is not None:
            values['created_at'] = capture.created_at
        return await self._insert_if_absent(CaptureModel, values)

    @Logger.io
    async def insert_refund_if_absent(self, *, refund: Refund) -> IngestOutcome:
        values = {
            'id': refund.id,
            'capture_id': refund.capture_id,
            'order_id': refund.order_id,
            'status': refund.status,
            'amount': refund.amount,
            'line_item_ids': ','.join(refund.line_item_ids),
        }
        if refund.created_at is not None:
            values['created_at'] = refund.created_at
        return await self._insert_if_absent(RefundModel, values)

    @Logger.io
    async def update_order_status(self, *, order_id: str, status: OrderStatus) -> None:
        await self.session.execute(
            update(OrderModel).where(OrderModel.id == order_id).values(status=str(status))
        )

    @Logger.io
    async def mark_capture_refunded(self, *, capture_id: str) -> None:
        await self.session.execute(
            update(CaptureModel)
            .where(CaptureModel.id == capture_id)
            .values(status=str(CaptureStatus.REFUNDED))
        )

    @Logger.io
    async def mark_line_items_refunded(self, *, line_item_ids: List[str]) -> None:
        if not line_item_ids:
            return
        await self.session.execute(
            update(LineItemModel)
            .where(LineItemModel.id.in_(line_item_ids))
            .values(status=str(LineItemStatus.REFUNDED))
        )
