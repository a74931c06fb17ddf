"""
Capacity Ledger Repository Implementation

Every mutation is a single statement so concurrent webhooks never lose an update:
- blind deltas are INSERT ... ON CONFLICT DO UPDATE SET available = available + delta
- the guarded decrement is UPDATE ... WHERE available >= quantity
"""

from datetime import datetime
from typing import List

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from src.platform.database.orm_db_setting import dialect_insert
from src.platform.exception.exceptions import DomainError
from src.platform.logging.loguru_io import Logger
from src.service.reconciliation.app.interface.i_capacity_ledger_repo import ICapacityLedgerRepo
from src.service.reconciliation.domain.entity.capacity_entry_entity import CapacityEntry
from src.service.reconciliation.domain.value_object.slot_key import from_epoch, to_epoch
from src.service.reconciliation.driven_adapter.model.capacity_entry_model import (
    CapacityEntryModel,
)


class CapacityLedgerRepoImpl(ICapacityLedgerRepo):
    def __init__(self, *, session: AsyncSession, default_available: int = 0) -> None:
        self.session = session
        self.default_available = default_available

    @staticmethod
    def _to_entity(model: CapacityEntryModel) -> CapacityEntry:
        return CapacityEntry(
            product_id=model.product_id,
            trip_instant=from_epoch(model.trip_epoch),
            available=model.available,
            cancelled=model.cancelled,
        )

    @staticmethod
    def _check_quantity(quantity: int) -> None:
        if quantity <= 0:
            raise DomainError(f'Ledger quantity must be positive, got {quantity}')

    async def _apply_delta(self, *, product_id: int, trip_instant: datetime, delta: int) -> None:
        table = CapacityEntryModel.__table__
        stmt = (
            dialect_insert(self.session, CapacityEntryModel)
            .values(
                product_id=product_id,
                trip_epoch=to_epoch(trip_instant),
                available=self.default_available + delta,
                cancelled=False,
            )
            .on_conflict_do_update(
                index_elements=['product_id', 'trip_epoch'],
                set_={'available': table.c.available + delta},
            )
        )
        await self.session.execute(stmt)

    @Logger.io
    async def increment(self, *, product_id: int, trip_instant: datetime, quantity: int) -> None:
        self._check_quantity(quantity)
        await self._apply_delta(product_id=product_id, trip_instant=trip_instant, delta=quantity)

    @Logger.io
    async def decrement(self, *, product_id: int, trip_instant: datetime, quantity: int) -> None:
        self._check_quantity(quantity)
        await self._apply_delta(product_id=product_id, trip_instant=trip_instant, delta=-quantity)

    @Logger.io
    async def decrement_if_available(
        self, *, product_id: int, trip_instant: datetime, quantity: int
    ) -> bool:
        self._check_quantity(quantity)
        epoch = to_epoch(trip_instant)
        await self.session.execute(
            dialect_insert(self.session, CapacityEntryModel)
            .values(
                product_id=product_id,
                trip_epoch=epoch,
                available=self.default_available,
                cancelled=False,
            )
            .on_conflict_do_nothing(index_elements=['product_id', 'trip_epoch'])
        )
        result = await self.session.execute(
            update(CapacityEntryModel)
            .where(
                CapacityEntryModel.product_id == product_id,
                CapacityEntryModel.trip_epoch == epoch,
                CapacityEntryModel.available >= quantity,
            )
            .values(available=CapacityEntryModel.available - quantity)
            .returning(CapacityEntryModel.available)
        )
        return result.scalar_one_or_none() is not None

    @Logger.io
    async def set_available(
        self, *, product_id: int, trip_instant: datetime, available: int, cancelled: bool = False
    ) -> CapacityEntry:
        stmt = (
            dialect_insert(self.session, CapacityEntryModel)
            .values(
                product_id=product_id,
                trip_epoch=to_epoch(trip_instant),
                available=available,
                cancelled=cancelled,
            )
            .on_conflict_do_update(
                index_elements=['product_id', 'trip_epoch'],
                set_={'available': available, 'cancelled': cancelled},
            )
        )
        await self.session.execute(stmt)
        return CapacityEntry(
            product_id=product_id,
            trip_instant=from_epoch(to_epoch(trip_instant)),
            available=available,
            cancelled=cancelled,
        )

    @Logger.io
    async def set_cancelled(
        self, *, product_id: int, trip_instant: datetime, cancelled: bool
    ) -> None:
        stmt = (
            dialect_insert(self.session, CapacityEntryModel)
            .values(
                product_id=product_id,
                trip_epoch=to_epoch(trip_instant),
                available=self.default_available,
                cancelled=cancelled,
            )
            .on_conflict_do_update(
                index_elements=['product_id', 'trip_epoch'],
                set_={'cancelled': cancelled},
            )
        )
        await self.session.execute(stmt)

    @Logger.io
    async def get(self, *, product_id: int, trip_instant: datetime) -> CapacityEntry:
        result = await self.session.execute(
            select(CapacityEntryModel)
            .where(
                CapacityEntryModel.product_id == product_id,
                CapacityEntryModel.trip_epoch == to_epoch(trip_instant),
            )
            .execution_options(populate_existing=True)
        )
        model = result.scalar_one_or_none()
        if model is None:
            return CapacityEntry(
                product_id=product_id,
                trip_instant=from_epoch(to_epoch(trip_instant)),
                available=self.default_available,
            )
        return self._to_entity(model)

    @Logger.io
    async def list_range(
        self, *, from_instant: datetime, to_instant: datetime
    ) -> List[CapacityEntry]:
        result = await self.session.execute(
            select(CapacityEntryModel)
            .where(
                CapacityEntryModel.trip_epoch >= to_epoch(from_instant),
                CapacityEntryModel.trip_epoch <= to_epoch(to_instant),
            )
            .order_by(CapacityEntryModel.trip_epoch, CapacityEntryModel.product_id)
            .execution_options(populate_existing=True)
        )
        return [self._to_entity(model) for model in result.scalars().all()]
