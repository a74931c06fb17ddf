from datetime import datetime
from typing import Optional

import attrs

from src.platform.exception.exceptions import DomainError


@attrs.define(frozen=True)
class TransferRequest:
    """Append-only record moving a line item to another slot; the latest one is effective."""

    line_item_id: str
    new_sku: str
    new_name: str = ''
    old_sku: Optional[str] = None  # when given, must match the effective SKU at apply time
    id: Optional[int] = None
    created_at: Optional[datetime] = None

    @classmethod
    def create(
        cls, *, line_item_id: str, new_sku: str, new_name: str = '', old_sku: Optional[str] = None
    ) -> 'TransferRequest':
        if not line_item_id:
            raise DomainError('line_item_id is required')
        if not new_sku:
            raise DomainError('new_sku is required')
        return cls(line_item_id=line_item_id, new_sku=new_sku, new_name=new_name, old_sku=old_sku)

    def applied(self, *, old_sku: str) -> 'TransferRequest':
        return attrs.evolve(self, old_sku=old_sku)
