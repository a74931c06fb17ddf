from abc import ABC, abstractmethod

from src.platform.database.unit_of_work import AbstractUnitOfWork
from src.service.reconciliation.app.interface.i_payment_provider import IPaymentProvider
from src.service.reconciliation.domain.entity.merchant_config_entity import MerchantConfig
from src.service.reconciliation.domain.enum.payment_type import PaymentType


class IProviderRegistry(ABC):
    """Selects the provider adapter once per request; nothing else branches on provider identity."""

    @abstractmethod
    def provider_for(
        self, payment_type: PaymentType, *, uow: AbstractUnitOfWork
    ) -> IPaymentProvider:
        pass

    def for_merchant(self, config: MerchantConfig, *, uow: AbstractUnitOfWork) -> IPaymentProvider:
        return self.provider_for(config.payment_type, uow=uow)
