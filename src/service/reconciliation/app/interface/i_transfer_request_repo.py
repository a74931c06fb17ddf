from abc import ABC, abstractmethod
from typing import Dict, List, Optional

from src.service.reconciliation.domain.entity.transfer_request_entity import TransferRequest


class ITransferRequestRepo(ABC):
    """Append-only transfer log; the latest request per line item is its effective SKU."""

    @abstractmethod
    async def append(self, *, transfer_request: TransferRequest) -> TransferRequest:
        """
        Returns:
            The stored request with its id and created_at
        """
        pass

    @abstractmethod
    async def get_effective(self, *, line_item_id: str) -> Optional[TransferRequest]:
        pass

    @abstractmethod
    async def get_effective_many(self, *, line_item_ids: List[str]) -> Dict[str, TransferRequest]:
        pass
