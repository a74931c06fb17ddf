from typing import Tuple

from src.platform.database.unit_of_work import AbstractUnitOfWork
from src.platform.exception.exceptions import NotFoundError
from src.service.reconciliation.app.interface.i_payment_provider import IPaymentProvider
from src.service.reconciliation.app.interface.i_provider_registry import IProviderRegistry
from src.service.reconciliation.domain.entity.merchant_config_entity import MerchantConfig


async def get_merchant_provider(
    *, uow: AbstractUnitOfWork, provider_registry: IProviderRegistry, merchant_id: str
) -> Tuple[MerchantConfig, IPaymentProvider]:
    """
    Merchant configuration and the provider adapter it settles through

    Raises:
        NotFoundError: No configuration stored for the merchant
    """
    async with uow:
        config = await uow.merchant_config_repo.get(merchant_id=merchant_id)
    if config is None:
        raise NotFoundError(f'Merchant {merchant_id} not found')
    return config, provider_registry.for_merchant(config, uow=uow)
