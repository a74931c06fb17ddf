from datetime import datetime
from typing import Optional, Self

from fastapi import Depends

from src.platform.database.unit_of_work import AbstractUnitOfWork, get_unit_of_work
from src.platform.exception.exceptions import DomainError
from src.platform.logging.loguru_io import Logger
from src.service.reconciliation.domain.entity.capacity_entry_entity import CapacityEntry


class OverrideCapacityUseCase:
    """
    Operator sets a slot's counter outright, or only its cancellation flag

    Without `available` the counter keeps whatever sales and refunds made of it.
    """

    def __init__(self, *, uow: AbstractUnitOfWork) -> None:
        self.uow = uow

    @classmethod
    def depends(cls, uow: AbstractUnitOfWork = Depends(get_unit_of_work)) -> Self:
        return cls(uow=uow)

    @Logger.io
    async def execute(
        self,
        *,
        product_id: int,
        trip_instant: datetime,
        available: Optional[int] = None,
        cancelled: bool = False,
    ) -> CapacityEntry:
        if product_id < 0:
            raise DomainError('product_id must be non-negative')

        async with self.uow:
            ledger = self.uow.capacity_ledger_repo
            if available is None:
                await ledger.set_cancelled(
                    product_id=product_id, trip_instant=trip_instant, cancelled=cancelled
                )
                entry = await ledger.get(product_id=product_id, trip_instant=trip_instant)
            else:
                entry = await ledger.set_available(
                    product_id=product_id,
                    trip_instant=trip_instant,
                    available=available,
                    cancelled=cancelled,
                )
            await self.uow.commit()

        Logger.base.info(
            f'🛠️ [Ledger] Override product {product_id} @ {trip_instant.isoformat()} '
            f'-> available={entry.available} cancelled={cancelled}'
        )
        return entry
