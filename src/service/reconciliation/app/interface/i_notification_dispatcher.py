from abc import ABC, abstractmethod
from typing import List, Optional

from src.service.reconciliation.domain.entity.merchant_config_entity import MerchantConfig
from src.service.reconciliation.domain.entity.order_entity import LineItem, Order


class INotificationDispatcher(ABC):
    """
    Outbound customer/merchant notifications (email, SMS).

    Called after the ledger transaction committed; failures are logged by the
    caller and never fail the webhook.
    """

    @abstractmethod
    async def notify_purchase(self, *, order: Order, config: Optional[MerchantConfig]) -> None:
        pass

    @abstractmethod
    async def notify_refund(
        self, *, order: Order, refunded_items: List[LineItem], config: Optional[MerchantConfig]
    ) -> None:
        pass
