from typing import List, Self

from dependency_injector.wiring import Provide, inject
from fastapi import Depends

from src.platform.config.di import Container
from src.platform.database.unit_of_work import AbstractUnitOfWork, get_unit_of_work
from src.platform.logging.loguru_io import Logger
from src.service.reconciliation.app.dto.admin_dto import TransferResult
from src.service.reconciliation.app.interface.i_provider_registry import IProviderRegistry
from src.service.reconciliation.app.query.get_merchant_provider import get_merchant_provider
from src.service.reconciliation.domain.entity.transfer_request_entity import TransferRequest


class TransferTicketsUseCase:
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
    async def execute(
        self, *, merchant_id: str, requests: List[TransferRequest]
    ) -> List[TransferResult]:
        """All requests apply or none do."""
        config, provider = await get_merchant_provider(
            uow=self.uow, provider_registry=self.provider_registry, merchant_id=merchant_id
        )
        return await provider.transfer(config=config, requests=requests)
