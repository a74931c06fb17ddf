"""
Stripe API port

Calls run against the platform account; `account` targets a connected account.
Implementations raise ProviderDependencyError on Stripe API failures.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional


class IStripeGateway(ABC):
    @abstractmethod
    def construct_event(self, *, payload: bytes, signature: str) -> Dict[str, Any]:
        """
        Verify the Stripe-Signature header and decode the event

        Raises:
            WebhookAuthenticationError: signature missing, stale or not matching
            MalformedPayloadError: payload is not a Stripe event
        """
        pass

    @abstractmethod
    async def retrieve_payment_intent(
        self, *, payment_intent_id: str, account: Optional[str] = None
    ) -> Dict[str, Any]:
        pass

    @abstractmethod
    async def capture_payment_intent(
        self, *, payment_intent_id: str, account: Optional[str] = None
    ) -> Dict[str, Any]:
        pass

    @abstractmethod
    async def find_checkout_session(
        self, *, payment_intent_id: str, account: Optional[str] = None
    ) -> Optional[Dict[str, Any]]:
        pass

    @abstractmethod
    async def list_checkout_line_items(
        self, *, session_id: str, account: Optional[str] = None
    ) -> List[Dict[str, Any]]:
        """Line items with `price.product` expanded (the SKU lives in product metadata)"""
        pass

    @abstractmethod
    async def create_transfer(
        self,
        *,
        destination: str,
        amount_cents: int,
        currency: str,
        transfer_group: str,
        idempotency_key: str,
        metadata: Dict[str, str],
    ) -> Dict[str, Any]:
        pass

    @abstractmethod
    async def list_transfers(self, *, transfer_group: str) -> List[Dict[str, Any]]:
        pass

    @abstractmethod
    async def reverse_transfer(
        self, *, transfer_id: str, amount_cents: int, metadata: Dict[str, str]
    ) -> Dict[str, Any]:
        pass

    @abstractmethod
    async def create_refund(
        self, *, payment_intent_id: str, amount_cents: int, metadata: Dict[str, str]
    ) -> Dict[str, Any]:
        pass
