"""
Payment Provider Interface

The capability set both payment backends implement. Everything above this
port (webhook pipeline, admin use cases) is provider-agnostic; adding a
backend means adding an implementation and a registry entry.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import List, Mapping, Optional

from src.service.reconciliation.app.dto.admin_dto import (
    ManualEntry,
    RefundConfirmation,
    RefundRequest,
    TransferResult,
)
from src.service.reconciliation.app.dto.report_dto import OrderSummary, PassBundle, SoldTickets
from src.service.reconciliation.app.dto.webhook_notice import ParsedWebhook
from src.service.reconciliation.domain.entity.merchant_config_entity import MerchantConfig
from src.service.reconciliation.domain.entity.order_entity import Order
from src.service.reconciliation.domain.entity.transfer_request_entity import TransferRequest
from src.service.reconciliation.domain.enum.payment_type import PaymentType


class IPaymentProvider(ABC):
    payment_type: PaymentType

    # ---- webhook side ----

    @abstractmethod
    async def authenticate_webhook(self, *, headers: Mapping[str, str], body: bytes) -> None:
        """
        Raises:
            WebhookAuthenticationError: the transport signature does not match the body
        """
        pass

    @abstractmethod
    def parse_webhook(self, *, body: bytes) -> ParsedWebhook:
        """
        Classify an authenticated envelope into a provider-neutral notice

        Raises:
            MalformedPayloadError: the envelope or its resource cannot be read
        """
        pass

    @abstractmethod
    async def fetch_order(self, *, order_ref: str, merchant_ref: Optional[str] = None) -> Order:
        """Remote order / payment detail with every line item"""
        pass

    @abstractmethod
    async def settle_sale(self, *, order: Order, config: MerchantConfig) -> None:
        """
        Pay out a first-seen sale to the merchant's connected accounts, if the provider splits

        Must be safe to repeat for the same order.

        Raises:
            ProviderDependencyError: the payout could not be made (provider retries the webhook)
        """
        pass

    @abstractmethod
    async def resolve_capture_order_ref(self, *, capture_id: str) -> Optional[str]:
        """Walk a capture's "up" link to its parent order id"""
        pass

    # ---- operator side ----

    @abstractmethod
    async def fetch_sold_tickets(
        self, *, config: MerchantConfig, from_instant: datetime, to_instant: datetime
    ) -> List[SoldTickets]:
        pass

    @abstractmethod
    async def fetch_orders_at_slot(
        self, *, config: MerchantConfig, trip_instant: datetime
    ) -> List[OrderSummary]:
        pass

    @abstractmethod
    async def fetch_pass_items(self, *, config: MerchantConfig, order_id: str) -> PassBundle:
        pass

    @abstractmethod
    async def capture(self, *, config: MerchantConfig, order_id: str) -> Order:
        pass

    @abstractmethod
    async def refund(self, *, config: MerchantConfig, request: RefundRequest) -> RefundConfirmation:
        pass

    @abstractmethod
    async def transfer(
        self, *, config: MerchantConfig, requests: List[TransferRequest]
    ) -> List[TransferResult]:
        pass

    @abstractmethod
    async def manual_entry(self, *, config: MerchantConfig, entry: ManualEntry) -> Order:
        pass
