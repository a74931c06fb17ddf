"""
Slot codec

A sellable slot (product, category, trip instant) travels through the payment
providers as the line-item SKU:

    <product_id><CATEGORY><10-digit epoch seconds>[<sequence digits>]

e.g. ``12AM1700000000`` is product 12, category AM, 2023-11-14 22:13:20 UTC.
Every ledger key, transfer and report resolves slot identity through this module.
"""

from datetime import datetime, timezone
import re
from typing import Optional

import attrs

from src.platform.exception.exceptions import DomainError
from src.service.reconciliation.domain.reconciliation_error import SlotDecodeError


SKU_PATTERN = re.compile(r'(\d+)([A-Z]+)(\d{10})\d*')
CATEGORY_PATTERN = re.compile(r'[A-Z]+')
MAX_EPOCH_SECONDS = 9_999_999_999

# Reserved non-slot line items: gift cards and the service fee never touch the ledger
GIFT_CARD_PREFIX = 'GIFT'
SERVICE_FEE_SKU = 'SVCFEE'
FEE_ITEM_NAME = 'Fees'
SHOW_PREFIX = 'SHOW'


def _to_utc_instant(value: datetime | int) -> datetime:
    if isinstance(value, int):
        return datetime.fromtimestamp(value, tz=timezone.utc)
    if value.tzinfo is None:
        raise DomainError('trip_instant must be timezone-aware')
    return value.astimezone(timezone.utc).replace(microsecond=0)


def to_epoch(value: datetime | int) -> int:
    return int(_to_utc_instant(value).timestamp())


def from_epoch(epoch: int) -> datetime:
    return _to_utc_instant(int(epoch))


@attrs.frozen
class SlotKey:
    product_id: int
    category: str
    trip_instant: datetime = attrs.field(converter=_to_utc_instant)

    def __attrs_post_init__(self) -> None:
        if self.product_id < 0:
            raise DomainError('product_id must be non-negative')
        if not CATEGORY_PATTERN.fullmatch(self.category):
            raise DomainError(f'category must be upper-case alphabetic, got {self.category!r}')
        if not 0 <= self.epoch <= MAX_EPOCH_SECONDS:
            raise DomainError('trip_instant does not fit the 10-digit epoch field')

    @property
    def epoch(self) -> int:
        return int(self.trip_instant.timestamp())

    def to_sku(self, seq: Optional[int] = None) -> str:
        return encode(self.product_id, self.category, self.trip_instant, seq)


def encode(
    product_id: int, category: str, trip_instant: datetime | int, seq: Optional[int] = None
) -> str:
    """Deterministic SKU for a slot; `seq` disambiguates otherwise identical SKUs."""
    key = SlotKey(product_id=product_id, category=category.upper(), trip_instant=trip_instant)
    sku = f'{key.product_id}{key.category}{key.epoch:010d}'
    if seq is not None:
        if seq < 0:
            raise DomainError('seq must be non-negative')
        sku += str(seq)
    return sku


def decode(sku: str) -> SlotKey:
    match = SKU_PATTERN.fullmatch(sku or '')
    if match is None:
        raise SlotDecodeError(sku)
    product_id, category, epoch = match.groups()
    return SlotKey(product_id=int(product_id), category=category, trip_instant=int(epoch))


def try_decode(sku: Optional[str]) -> Optional[SlotKey]:
    """Slot of a line item, or None for fees, gift cards and other non-slot items."""
    if not sku:
        return None
    try:
        return decode(sku)
    except SlotDecodeError:
        return None


def is_slot_item(sku: Optional[str], name: Optional[str] = None) -> bool:
    if not sku or sku.startswith(GIFT_CARD_PREFIX) or sku == SERVICE_FEE_SKU:
        return False
    if name == FEE_ITEM_NAME:
        return False
    return try_decode(sku) is not None


def is_show_sku(sku: Optional[str]) -> bool:
    return bool(sku and sku.startswith(SHOW_PREFIX))
