from typing import Self

from dependency_injector.wiring import Provide, inject
from fastapi import Depends

from src.platform.config.di import Container
from src.platform.database.unit_of_work import AbstractUnitOfWork, get_unit_of_work
from src.platform.logging.loguru_io import Logger
from src.platform.metrics.reconciliation_metrics import metrics
from src.service.reconciliation.app.interface.i_provider_registry import IProviderRegistry
from src.service.reconciliation.app.query.get_merchant_provider import get_merchant_provider
from src.service.reconciliation.domain.entity.order_entity import Order
from src.service.reconciliation.domain.reconciliation_error import ProviderDependencyError


class CaptureOrderUseCase:
    """
    Capture an approved order at the provider and record the sale

    The sale goes through the same dedup as the capture webhook, so whichever
    of the two lands first decrements the ledger and the other is a no-op.
    """

    def __init__(self, *, uow: AbstractUnitOfWork, provider_registry: IProviderRegistry) -> None:
        self.uow = uow
        self.provider_registry = provider_registry

    @classmethod
    @inject
    def depends(
        cls,
        uow: AbstractUnitOfWork = Depends(get_unit_of_work),
        provider_registry: IProviderRegistry = Depends(Provide[Container.provider_registry]),
    ) -> Self:
        return cls(uow=uow, provider_registry=provider_registry)

    @Logger.io
    async def execute(self, *, merchant_id: str, order_id: str) -> Order:
        config, provider = await get_merchant_provider(
            uow=self.uow, provider_registry=self.provider_registry, merchant_id=merchant_id
        )
        try:
            return await provider.capture(config=config, order_id=order_id)
        except ProviderDependencyError:
            metrics.record_provider_failure(provider=config.payment_type.value)
            raise
