"""
Integration tests for CapacityLedgerRepoImpl

Runs the single-statement upserts and the guarded decrement against SQLite.
"""

from sqlalchemy.ext.asyncio import AsyncSession
import pytest

from src.platform.exception.exceptions import DomainError
from src.service.reconciliation.driven_adapter.repo.capacity_ledger_repo_impl import (
    CapacityLedgerRepoImpl,
)
from test.constants import LATER_TRIP_INSTANT, PRODUCT_ID, TRIP_INSTANT


@pytest.mark.integration
class TestCapacityLedgerRepo:
    @pytest.fixture
    def repo(self, db_session: AsyncSession) -> CapacityLedgerRepoImpl:
        return CapacityLedgerRepoImpl(session=db_session, default_available=0)

    @pytest.mark.asyncio
    async def test_untouched_slot_reports_default(self, db_session: AsyncSession) -> None:
        repo = CapacityLedgerRepoImpl(session=db_session, default_available=40)

        entry = await repo.get(product_id=PRODUCT_ID, trip_instant=TRIP_INSTANT)

        assert entry.available == 40
        assert entry.cancelled is False
        assert await repo.list_range(from_instant=TRIP_INSTANT, to_instant=TRIP_INSTANT) == []

    @pytest.mark.asyncio
    async def test_first_delta_creates_row_from_default(self, db_session: AsyncSession) -> None:
        repo = CapacityLedgerRepoImpl(session=db_session, default_available=40)

        await repo.decrement(product_id=PRODUCT_ID, trip_instant=TRIP_INSTANT, quantity=3)
        await repo.increment(product_id=PRODUCT_ID, trip_instant=TRIP_INSTANT, quantity=1)

        entry = await repo.get(product_id=PRODUCT_ID, trip_instant=TRIP_INSTANT)
        assert entry.available == 38

    @pytest.mark.asyncio
    async def test_blind_decrement_may_go_negative(self, repo: CapacityLedgerRepoImpl) -> None:
        await repo.set_available(product_id=PRODUCT_ID, trip_instant=TRIP_INSTANT, available=1)

        await repo.decrement(product_id=PRODUCT_ID, trip_instant=TRIP_INSTANT, quantity=2)

        entry = await repo.get(product_id=PRODUCT_ID, trip_instant=TRIP_INSTANT)
        assert entry.available == -1

    @pytest.mark.asyncio
    async def test_guarded_decrement_refuses_oversell(self, repo: CapacityLedgerRepoImpl) -> None:
        await repo.set_available(product_id=PRODUCT_ID, trip_instant=TRIP_INSTANT, available=2)

        taken = await repo.decrement_if_available(
            product_id=PRODUCT_ID, trip_instant=TRIP_INSTANT, quantity=3
        )

        assert taken is False
        entry = await repo.get(product_id=PRODUCT_ID, trip_instant=TRIP_INSTANT)
        assert entry.available == 2

    @pytest.mark.asyncio
    async def test_guarded_decrement_takes_exact_remainder(
        self, repo: CapacityLedgerRepoImpl
    ) -> None:
        await repo.set_available(product_id=PRODUCT_ID, trip_instant=TRIP_INSTANT, available=2)

        taken = await repo.decrement_if_available(
            product_id=PRODUCT_ID, trip_instant=TRIP_INSTANT, quantity=2
        )

        assert taken is True
        entry = await repo.get(product_id=PRODUCT_ID, trip_instant=TRIP_INSTANT)
        assert entry.available == 0

    @pytest.mark.asyncio
    async def test_set_available_overwrites_and_cancels(
        self, repo: CapacityLedgerRepoImpl
    ) -> None:
        await repo.decrement(product_id=PRODUCT_ID, trip_instant=TRIP_INSTANT, quantity=4)

        entry = await repo.set_available(
            product_id=PRODUCT_ID, trip_instant=TRIP_INSTANT, available=10, cancelled=True
        )

        assert entry.available == 10
        stored = await repo.get(product_id=PRODUCT_ID, trip_instant=TRIP_INSTANT)
        assert stored.available == 10
        assert stored.cancelled is True

    @pytest.mark.asyncio
    @pytest.mark.parametrize('quantity', [0, -2])
    async def test_non_positive_quantity_is_rejected(
        self, repo: CapacityLedgerRepoImpl, quantity: int
    ) -> None:
        with pytest.raises(DomainError):
            await repo.decrement(
                product_id=PRODUCT_ID, trip_instant=TRIP_INSTANT, quantity=quantity
            )

    @pytest.mark.asyncio
    async def test_set_cancelled_keeps_counter(self, repo: CapacityLedgerRepoImpl) -> None:
        await repo.decrement(product_id=PRODUCT_ID, trip_instant=TRIP_INSTANT, quantity=3)

        await repo.set_cancelled(product_id=PRODUCT_ID, trip_instant=TRIP_INSTANT, cancelled=True)

        entry = await repo.get(product_id=PRODUCT_ID, trip_instant=TRIP_INSTANT)
        assert (entry.available, entry.cancelled) == (-3, True)

    @pytest.mark.asyncio
    async def test_set_cancelled_creates_row_at_default(
        self, repo: CapacityLedgerRepoImpl
    ) -> None:
        await repo.set_cancelled(product_id=PRODUCT_ID, trip_instant=TRIP_INSTANT, cancelled=True)

        entry = await repo.get(product_id=PRODUCT_ID, trip_instant=TRIP_INSTANT)
        assert (entry.available, entry.cancelled) == (0, True)

    @pytest.mark.asyncio
    async def test_list_range_is_inclusive_and_ordered(self, repo: CapacityLedgerRepoImpl) -> None:
        await repo.set_available(product_id=99, trip_instant=LATER_TRIP_INSTANT, available=5)
        await repo.set_available(
            product_id=PRODUCT_ID, trip_instant=LATER_TRIP_INSTANT, available=6
        )
        await repo.set_available(product_id=PRODUCT_ID, trip_instant=TRIP_INSTANT, available=7)

        entries = await repo.list_range(from_instant=TRIP_INSTANT, to_instant=LATER_TRIP_INSTANT)

        assert [(entry.product_id, entry.trip_instant, entry.available) for entry in entries] == [
            (PRODUCT_ID, TRIP_INSTANT, 7),
            (PRODUCT_ID, LATER_TRIP_INSTANT, 6),
            (99, LATER_TRIP_INSTANT, 5),
        ]

    @pytest.mark.asyncio
    async def test_list_range_excludes_outside_instants(
        self, repo: CapacityLedgerRepoImpl
    ) -> None:
        await repo.set_available(
            product_id=PRODUCT_ID, trip_instant=LATER_TRIP_INSTANT, available=6
        )

        entries = await repo.list_range(from_instant=TRIP_INSTANT, to_instant=TRIP_INSTANT)

        assert entries == []
