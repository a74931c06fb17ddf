"""Reconciliation Value Objects"""

from src.service.reconciliation.domain.value_object.slot_key import (
    SlotKey,
    decode,
    encode,
    try_decode,
)

__all__ = ['SlotKey', 'decode', 'encode', 'try_decode']
