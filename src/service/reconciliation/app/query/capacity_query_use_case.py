from datetime import datetime
from typing import List, Self

from fastapi import Depends

from src.platform.database.unit_of_work import AbstractUnitOfWork, get_read_unit_of_work
from src.platform.exception.exceptions import DomainError
from src.platform.logging.loguru_io import Logger
from src.service.reconciliation.domain.entity.capacity_entry_entity import CapacityEntry


class CapacityQueryUseCase:
    def __init__(self, *, uow: AbstractUnitOfWork) -> None:
        self.uow = uow

    @classmethod
    def depends(cls, uow: AbstractUnitOfWork = Depends(get_read_unit_of_work)) -> Self:
        return cls(uow=uow)

    @Logger.io
    async def get_capacity(self, *, product_id: int, trip_instant: datetime) -> CapacityEntry:
        """Untouched slots report the configured default capacity."""
        async with self.uow:
            return await self.uow.capacity_ledger_repo.get(
                product_id=product_id, trip_instant=trip_instant
            )

    @Logger.io
    async def list_capacity(
        self, *, from_instant: datetime, to_instant: datetime
    ) -> List[CapacityEntry]:
        if from_instant > to_instant:
            raise DomainError('from_ts must not be after to_ts')
        async with self.uow:
            return await self.uow.capacity_ledger_repo.list_range(
                from_instant=from_instant, to_instant=to_instant
            )
