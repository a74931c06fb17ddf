"""
Capacity Ledger Repository Interface

Durable per-slot counters. Every capacity mutation of the system goes through
this port: sales decrement, refunds increment, transfers do both, operators
override.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import List

from src.service.reconciliation.domain.entity.capacity_entry_entity import CapacityEntry


class ICapacityLedgerRepo(ABC):
    @abstractmethod
    async def increment(self, *, product_id: int, trip_instant: datetime, quantity: int) -> None:
        """
        Release capacity at a slot (blind delta, row created on first use)

        Args:
            product_id: Product of the slot
            trip_instant: Trip instant of the slot
            quantity: Positive number of seats released
        """
        pass

    @abstractmethod
    async def decrement(self, *, product_id: int, trip_instant: datetime, quantity: int) -> None:
        """
        Consume capacity at a slot without checking the floor (blind delta)

        The ledger is a counter here, not a reservation gate: an oversell
        shows up as a negative `available`.
        """
        pass

    @abstractmethod
    async def decrement_if_available(
        self, *, product_id: int, trip_instant: datetime, quantity: int
    ) -> bool:
        """
        Consume capacity only when `available >= quantity`, in one conditional UPDATE

        Returns:
            True when the seats were taken, False when the slot lacks capacity
        """
        pass

    @abstractmethod
    async def set_available(
        self, *, product_id: int, trip_instant: datetime, available: int, cancelled: bool = False
    ) -> CapacityEntry:
        """Operator override: absolute set of the counter"""
        pass

    @abstractmethod
    async def set_cancelled(
        self, *, product_id: int, trip_instant: datetime, cancelled: bool
    ) -> None:
        """Flag or unflag a slot as cancelled, leaving its counter untouched"""
        pass

    @abstractmethod
    async def get(self, *, product_id: int, trip_instant: datetime) -> CapacityEntry:
        """
        Current entry of a slot

        Returns:
            The stored entry, or an unsaved entry at the default capacity when
            the slot was never touched
        """
        pass

    @abstractmethod
    async def list_range(
        self, *, from_instant: datetime, to_instant: datetime
    ) -> List[CapacityEntry]:
        """Entries whose trip instant lies in [from_instant, to_instant]"""
        pass
