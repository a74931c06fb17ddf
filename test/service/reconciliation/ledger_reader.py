from datetime import datetime
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.platform.database.unit_of_work import SqlAlchemyUnitOfWork
from src.service.reconciliation.app.command.reconciliation_recorder import ReconciliationRecorder
from src.service.reconciliation.domain.entity.order_entity import Order
from src.service.reconciliation.driven_adapter.model.webhook_event_model import WebhookEventModel
from test.constants import PRODUCT_ID, TRIP_INSTANT


class LedgerReader:
    """Reads and seeds the ledger the way an operator would, outside the code under test."""

    def __init__(self, *, uow: SqlAlchemyUnitOfWork, session: AsyncSession) -> None:
        self.uow = uow
        self.session = session

    async def set_available(
        self,
        available: int,
        *,
        trip_instant: datetime = TRIP_INSTANT,
        product_id: int = PRODUCT_ID,
    ) -> None:
        async with self.uow:
            await self.uow.capacity_ledger_repo.set_available(
                product_id=product_id, trip_instant=trip_instant, available=available
            )
            await self.uow.commit()

    async def available(
        self, *, trip_instant: datetime = TRIP_INSTANT, product_id: int = PRODUCT_ID
    ) -> int:
        async with self.uow:
            entry = await self.uow.capacity_ledger_repo.get(
                product_id=product_id, trip_instant=trip_instant
            )
        return entry.available

    async def order(self, order_id: str) -> Optional[Order]:
        async with self.uow:
            return await self.uow.order_query_repo.get_order(order_id=order_id)

    async def record_sale(self, order: Order) -> None:
        async with self.uow:
            await ReconciliationRecorder(uow=self.uow).record_sale(order=order)
            await self.uow.commit()

    async def webhook_rows(self) -> List[WebhookEventModel]:
        result = await self.session.execute(
            select(WebhookEventModel)
            .order_by(WebhookEventModel.created_at)
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all())
