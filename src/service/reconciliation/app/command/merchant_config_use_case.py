from typing import Self

from fastapi import Depends

from src.platform.database.unit_of_work import AbstractUnitOfWork, get_unit_of_work
from src.platform.exception.exceptions import NotFoundError
from src.platform.logging.loguru_io import Logger
from src.service.reconciliation.domain.entity.merchant_config_entity import MerchantConfig


class MerchantConfigUseCase:
    """Merchant settings: payment backend, notification sender and Stripe split accounts."""

    def __init__(self, *, uow: AbstractUnitOfWork) -> None:
        self.uow = uow

    @classmethod
    def depends(cls, uow: AbstractUnitOfWork = Depends(get_unit_of_work)) -> Self:
        return cls(uow=uow)

    @Logger.io
    async def get(self, *, merchant_id: str) -> MerchantConfig:
        async with self.uow:
            config = await self.uow.merchant_config_repo.get(merchant_id=merchant_id)
        if config is None:
            raise NotFoundError(f'Merchant {merchant_id} not found')
        return config

    @Logger.io
    async def save(self, *, config: MerchantConfig) -> MerchantConfig:
        async with self.uow:
            saved = await self.uow.merchant_config_repo.save(config=config)
            await self.uow.commit()
        Logger.base.info(f'🏪 [Merchant] Saved {config.id} ({config.payment_type})')
        return saved
