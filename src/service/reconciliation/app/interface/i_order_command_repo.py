"""
Order Command Repository Interface

Writes for orders, line items, captures and refunds. The `*_if_absent`
methods are the dedup primitive of webhook ingestion: a single
INSERT ... ON CONFLICT DO NOTHING against the resource id.
"""

from abc import ABC, abstractmethod
from typing import List

from src.service.reconciliation.domain.entity.order_entity import Capture, Order
from src.service.reconciliation.domain.entity.refund_entity import Refund
from src.service.reconciliation.domain.enum.ingest_outcome import IngestOutcome
from src.service.reconciliation.domain.enum.order_status import OrderStatus


class IOrderCommandRepo(ABC):
    @abstractmethod
    async def insert_order_if_absent(self, *, order: Order) -> IngestOutcome:
        """
        Insert the order with its line items unless the order id already exists

        Returns:
            APPLIED when this call created the order, ALREADY_PROCESSED otherwise
            (line items are only written together with a newly created order)
        """
        pass

    @abstractmethod
    async def insert_capture_if_absent(self, *, capture: Capture) -> IngestOutcome:
        pass

    @abstractmethod
    async def insert_refund_if_absent(self, *, refund: Refund) -> IngestOutcome:
        pass

    @abstractmethod
    async def update_order_status(self, *, order_id: str, status: OrderStatus) -> None:
        pass

    @abstractmethod
    async def mark_capture_refunded(self, *, capture_id: str) -> None:
        pass

    @abstractmethod
    async def mark_line_items_refunded(self, *, line_item_ids: List[str]) -> None:
        pass
