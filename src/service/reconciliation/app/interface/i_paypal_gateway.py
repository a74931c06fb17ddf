"""
PayPal REST API port

Implementations must enforce bounded timeouts and raise ProviderDependencyError
on transport or API failures.
"""

from abc import ABC, abstractmethod
from decimal import Decimal
from typing import Any, Dict, Mapping, Optional


class IPaypalGateway(ABC):
    @abstractmethod
    async def verify_webhook_signature(
        self, *, headers: Mapping[str, str], body: bytes
    ) -> bool:
        """Ask PayPal whether the transmission headers sign this exact body"""
        pass

    @abstractmethod
    async def get_checkout_order(self, *, order_id: str) -> Dict[str, Any]:
        pass

    @abstractmethod
    async def capture_checkout_order(self, *, order_id: str) -> Dict[str, Any]:
        pass

    @abstractmethod
    async def get_capture(self, *, capture_id: str) -> Dict[str, Any]:
        pass

    @abstractmethod
    async def refund_capture(
        self,
        *,
        capture_id: str,
        amount: Optional[Decimal],
        currency: str,
        custom_id: str,
        merchant_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Args:
            capture_id: Capture to refund
            amount: Partial amount, None for the full capture
            currency: ISO currency code of the capture
            custom_id: Echoed back on the refund webhook (line item ids)
            merchant_id: Merchant the platform acts for (PayPal-Auth-Assertion)
        """
        pass
