from abc import ABC, abstractmethod
from typing import List, Optional

from src.service.reconciliation.app.dto.report_dto import LineItemView
from src.service.reconciliation.domain.entity.order_entity import Capture, LineItem, Order


class IOrderQueryRepo(ABC):
    @abstractmethod
    async def get_order(self, *, order_id: str) -> Optional[Order]:
        """Order with its line items and captures, or None"""
        pass

    @abstractmethod
    async def get_capture(self, *, capture_id: str) -> Optional[Capture]:
        pass

    @abstractmethod
    async def capture_exists(self, *, capture_id: str) -> bool:
        pass

    @abstractmethod
    async def refund_exists(self, *, refund_id: str) -> bool:
        pass

    @abstractmethod
    async def get_line_item(
        self, *, line_item_id: str, for_update: bool = False
    ) -> Optional[LineItem]:
        """
        Args:
            line_item_id: Line item id
            for_update: Lock the row until the surrounding transaction ends
        """
        pass

    @abstractmethod
    async def list_active_line_items(
        self, *, order_id: str, for_update: bool = False
    ) -> List[LineItem]:
        """Line items of the order that are not refunded yet"""
        pass

    @abstractmethod
    async def list_line_item_views(
        self, *, merchant_ids: List[str], order_id: Optional[str] = None
    ) -> List[LineItemView]:
        """
        Line items of the merchants joined with order, payer and effective SKU

        Args:
            merchant_ids: Merchant ids to include (live and sandbox)
            order_id: Restrict to one order
        """
        pass
