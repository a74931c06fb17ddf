from decimal import Decimal
from typing import List, Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import noload

from src.platform.logging.loguru_io import Logger
from src.service.reconciliation.app.dto.report_dto import LineItemView
from src.service.reconciliation.app.interface.i_order_query_repo import IOrderQueryRepo
from src.service.reconciliation.domain.entity.order_entity import Capture, LineItem, Order, Payer
from src.service.reconciliation.domain.enum.order_status import (
    CaptureStatus,
    LineItemStatus,
    OrderStatus,
)
from src.service.reconciliation.domain.enum.payment_type import PaymentType
from src.service.reconciliation.driven_adapter.model.order_model import (
    CaptureModel,
    LineItemModel,
    OrderModel,
)
from src.service.reconciliation.driven_adapter.model.refund_model import RefundModel
from src.service.reconciliation.driven_adapter.model.transfer_request_model import (
    TransferRequestModel,
)


class OrderQueryRepoImpl(IOrderQueryRepo):
    def __init__(self, *, session: AsyncSession) -> None:
        self.session = session

    @staticmethod
    def _to_payer(model: OrderModel) -> Payer:
        return Payer(
            payer_id=model.payer_id,
            name=model.payer_name,
            email=model.payer_email,
            phone=model.payer_phone,
        )

    @staticmethod
    def _to_line_item(model: LineItemModel) -> LineItem:
        return LineItem(
            id=model.id,
            order_id=model.order_id,
            sku=model.sku,
            name=model.name,
            quantity=model.quantity,
            unit_amount=Decimal(model.unit_amount),
            description=model.description,
            status=LineItemStatus(model.status),
        )

    @staticmethod
    def _to_capture(model: CaptureModel) -> Capture:
        return Capture(
            id=model.id,
            order_id=model.order_id,
            status=CaptureStatus(model.status),
            amount=Decimal(model.amount),
            currency=model.currency,
            created_at=model.created_at,
            updated_at=model.updated_at,
        )

    def _to_order(self, model: OrderModel) -> Order:
        return Order(
            id=model.id,
            merchant_id=model.merchant_id,
            provider=PaymentType(model.provider),
            status=OrderStatus(model.status),
            payer=self._to_payer(model),
            line_items=[self._to_line_item(item) for item in model.line_items],
            captures=[self._to_capture(capture) for capture in model.captures],
            channel=model.channel,
            created_at=model.created_at,
        )

    @Logger.io
    async def get_order(self, *, order_id: str) -> Optional[Order]:
        result = await self.session.execute(
            select(OrderModel)
            .where(OrderModel.id == order_id)
            .execution_options(populate_existing=True)
        )
        model = result.scalar_one_or_none()
        return self._to_order(model) if model else None

    @Logger.io
    async def get_capture(self, *, capture_id: str) -> Optional[Capture]:
        result = await self.session.execute(
            select(CaptureModel)
            .where(CaptureModel.id == capture_id)
            .options(noload(CaptureModel.order))
            .execution_options(populate_existing=True)
        )
        model = result.scalar_one_or_none()
        return self._to_capture(model) if model else None

    @Logger.io
    async def capture_exists(self, *, capture_id: str) -> bool:
        result = await self.session.execute(
            select(CaptureModel.id).where(CaptureModel.id == capture_id)
        )
        return result.scalar_one_or_none() is not None

    @Logger.io
    async def refund_exists(self, *, refund_id: str) -> bool:
        result = await self.session.execute(
            select(RefundModel.id).where(RefundModel.id == refund_id)
        )
        return result.scalar_one_or_none() is not None

    @Logger.io
    async def get_line_item(
        self, *, line_item_id: str, for_update: bool = False
    ) -> Optional[LineItem]:
        stmt = (
            select(LineItemModel)
            .where(LineItemModel.id == line_item_id)
            .options(noload(LineItemModel.order))
            .execution_options(populate_existing=True)
        )
        if for_update:
            stmt = stmt.with_for_update()
        model = (await self.session.execute(stmt)).scalar_one_or_none()
        return self._to_line_item(model) if model else None

    @Logger.io
    async def list_active_line_items(
        self, *, order_id: str, for_update: bool = False
    ) -> List[LineItem]:
        stmt = (
            select(LineItemModel)
            .where(
                LineItemModel.order_id == order_id,
                LineItemModel.status == str(LineItemStatus.ACTIVE),
            )
            .order_by(LineItemModel.id)
            .options(noload(LineItemModel.order))
            .execution_options(populate_existing=True)
        )
        if for_update:
            stmt = stmt.with_for_update()
        result = await self.session.execute(stmt)
        return [self._to_line_item(model) for model in result.scalars().all()]

    @Logger.io
    async def list_line_item_views(
        self, *, merchant_ids: List[str], order_id: Optional[str] = None
    ) -> List[LineItemView]:
        if not merchant_ids:
            return []

        latest = (
            select(
                TransferRequestModel.line_item_id,
                func.max(TransferRequestModel.id).label('latest_id'),
            )
            .group_by(TransferRequestModel.line_item_id)
            .subquery()
        )
        stmt = (
            select(
                LineItemModel,
                OrderModel,
                TransferRequestModel.new_sku,
                TransferRequestModel.new_name,
            )
            .join(OrderModel, LineItemModel.order_id == OrderModel.id)
            .outerjoin(latest, latest.c.line_item_id == LineItemModel.id)
            .outerjoin(TransferRequestModel, TransferRequestModel.id == latest.c.latest_id)
            .where(OrderModel.merchant_id.in_(merchant_ids))
            .order_by(OrderModel.created_at, OrderModel.id, LineItemModel.id)
            .options(
                noload(LineItemModel.order),
                noload(OrderModel.line_items),
                noload(OrderModel.captures),
            )
            .execution_options(populate_existing=True)
        )
        if order_id is not None:
            stmt = stmt.where(OrderModel.id == order_id)

        result = await self.session.execute(stmt)
        views = []
        for item, order, new_sku, new_name in result.all():
            views.append(
                LineItemView(
                    line_item_id=item.id,
                    order_id=order.id,
                    merchant_id=order.merchant_id,
                    sku=new_sku or item.sku,
                    name=(new_name or item.name) if new_sku else item.name,
                    original_sku=item.sku,
                    original_name=item.name,
                    quantity=item.quantity,
                    unit_amount=Decimal(item.unit_amount),
                    description=item.description,
                    status=LineItemStatus(item.status),
                    order_status=OrderStatus(order.status),
                    channel=order.channel,
                    payer=self._to_payer(order),
                    created_at=order.created_at,
                )
            )
        return views
