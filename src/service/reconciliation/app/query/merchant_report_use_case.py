from datetime import datetime
from typing import List, Self

from dependency_injector.wiring import Provide, inject
from fastapi import Depends

from src.platform.config.di import Container
from src.platform.database.unit_of_work import AbstractUnitOfWork, get_read_unit_of_work
from src.platform.exception.exceptions import DomainError
from src.platform.logging.loguru_io import Logger
from src.service.reconciliation.app.dto.report_dto import OrderSummary, PassBundle, SoldTickets
from src.service.reconciliation.app.interface.i_provider_registry import IProviderRegistry
from src.service.reconciliation.app.query.get_merchant_provider import get_merchant_provider


class MerchantReportUseCase:
    """Operator reports, all computed from the effective (post-transfer) SKU of each line item."""

    def __init__(self, *, uow: AbstractUnitOfWork, provider_registry: IProviderRegistry) -> None:
        self.uow = uow
        self.provider_registry = provider_registry

    @classmethod
    @inject
    def depends(
        cls,
        uow: AbstractUnitOfWork = Depends(get_read_unit_of_work),
        provider_registry: IProviderRegistry = Depends(Provide[Container.provider_registry]),
    ) -> Self:
        return cls(uow=uow, provider_registry=provider_registry)

    @Logger.io
    async def list_sold_tickets(
        self, *, merchant_id: str, from_instant: datetime, to_instant: datetime
    ) -> List[SoldTickets]:
        if from_instant > to_instant:
            raise DomainError('from_ts must not be after to_ts')
        config, provider = await get_merchant_provider(
            uow=self.uow, provider_registry=self.provider_registry, merchant_id=merchant_id
        )
        return await provider.fetch_sold_tickets(
            config=config, from_instant=from_instant, to_instant=to_instant
        )

    @Logger.io
    async def list_orders_at_slot(
        self, *, merchant_id: str, trip_instant: datetime
    ) -> List[OrderSummary]:
        config, provider = await get_merchant_provider(
            uow=self.uow, provider_registry=self.provider_registry, merchant_id=merchant_id
        )
        return await provider.fetch_orders_at_slot(config=config, trip_instant=trip_instant)

    @Logger.io
    async def get_pass_items(self, *, merchant_id: str, order_id: str) -> PassBundle:
        config, provider = await get_merchant_provider(
            uow=self.uow, provider_registry=self.provider_registry, merchant_id=merchant_id
        )
        return await provider.fetch_pass_items(config=config, order_id=order_id)
