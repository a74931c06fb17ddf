from abc import ABC, abstractmethod
from typing import Optional

from src.service.reconciliation.domain.entity.merchant_config_entity import MerchantConfig


class IMerchantConfigRepo(ABC):
    @abstractmethod
    async def get(self, *, merchant_id: str) -> Optional[MerchantConfig]:
        pass

    @abstractmethod
    async def find_by_reference(self, *, reference: str) -> Optional[MerchantConfig]:
        """
        Resolve whatever a provider calls the merchant

        Args:
            reference: Merchant id, sandbox id or Stripe connected account id
        """
        pass

    @abstractmethod
    async def save(self, *, config: MerchantConfig) -> MerchantConfig:
        pass
