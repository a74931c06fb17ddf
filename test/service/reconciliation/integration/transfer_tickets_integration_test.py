"""
Integration tests for ticket transfers

A transfer moves seats between slots without changing the total, refunds
release at the slot the item was last moved to, and a batch applies whole.
"""

from typing import Awaitable, Callable
from unittest.mock import AsyncMock

import pytest

from src.platform.database.unit_of_work import SqlAlchemyUnitOfWork
from src.platform.exception.exceptions import NotFoundError
from src.service.reconciliation.app.command.refund_tickets_use_case import RefundTicketsUseCase
from src.service.reconciliation.app.command.transfer_tickets_use_case import (
    TransferTicketsUseCase,
)
from src.service.reconciliation.domain.entity.merchant_config_entity import MerchantConfig
from src.service.reconciliation.domain.entity.transfer_request_entity import TransferRequest
from src.service.reconciliation.domain.enum.payment_type import PaymentType
from src.service.reconciliation.domain.reconciliation_error import TransferError
from src.service.reconciliation.driven_adapter.provider.paypal_provider import (
    order_from_checkout,
)
from src.service.reconciliation.driven_adapter.provider.provider_registry import ProviderRegistry
from test.constants import (
    LATER_TRIP_INSTANT,
    LATEST_TRIP_INSTANT,
    ORDER_ID,
    OTHER_MERCHANT_ID,
    PAYPAL_MERCHANT_ID,
    SKU_A,
    SKU_B,
    SKU_C,
)
from test.service.reconciliation.ledger_reader import LedgerReader
from test.service.reconciliation.payloads import paypal_checkout_order


LINE_ITEM_ID = f'{ORDER_ID}-0-0'


@pytest.fixture
def transfer(
    uow: SqlAlchemyUnitOfWork, provider_registry: ProviderRegistry
) -> TransferTicketsUseCase:
    return TransferTicketsUseCase(uow=uow, provider_registry=provider_registry)


@pytest.fixture(autouse=True)
async def sold_order(
    seed_merchant: Callable[[MerchantConfig], Awaitable[MerchantConfig]],
    paypal_merchant: MerchantConfig,
    ledger: LedgerReader,
) -> None:
    """ORD1 sold 2 seats at SKU_A; afterwards both slots are reset to 5 seats left."""
    await seed_merchant(paypal_merchant)
    await ledger.record_sale(order_from_checkout(paypal_checkout_order()))
    await ledger.set_available(5)
    await ledger.set_available(5, trip_instant=LATER_TRIP_INSTANT)


@pytest.mark.integration
class TestTransferTickets:
    @pytest.mark.asyncio
    async def test_transfer_conserves_seats(
        self, transfer: TransferTicketsUseCase, ledger: LedgerReader
    ) -> None:
        """
        Given: A=5, B=5 and a 2-seat line item at A
        When: The item moves to B
        Then: A=7, B=3
        """
        results = await transfer.execute(
            merchant_id=PAYPAL_MERCHANT_ID,
            requests=[TransferRequest.create(line_item_id=LINE_ITEM_ID, new_sku=SKU_B)],
        )

        assert [(r.line_item_id, r.old_sku, r.new_sku, r.quantity) for r in results] == [
            (LINE_ITEM_ID, SKU_A, SKU_B, 2)
        ]
        assert await ledger.available() == 7
        assert await ledger.available(trip_instant=LATER_TRIP_INSTANT) == 3

    @pytest.mark.asyncio
    async def test_chained_transfer_then_refund_releases_at_latest_slot(
        self,
        transfer: TransferTicketsUseCase,
        uow: SqlAlchemyUnitOfWork,
        provider_registry: ProviderRegistry,
        paypal_gateway: AsyncMock,
        ledger: LedgerReader,
    ) -> None:
        await ledger.set_available(5, trip_instant=LATEST_TRIP_INSTANT)
        await transfer.execute(
            merchant_id=PAYPAL_MERCHANT_ID,
            requests=[
                TransferRequest.create(line_item_id=LINE_ITEM_ID, new_sku=SKU_B, old_sku=SKU_A),
                TransferRequest.create(line_item_id=LINE_ITEM_ID, new_sku=SKU_C, old_sku=SKU_B),
            ],
        )
        assert await ledger.available() == 7
        assert await ledger.available(trip_instant=LATER_TRIP_INSTANT) == 5
        assert await ledger.available(trip_instant=LATEST_TRIP_INSTANT) == 3

        paypal_gateway.refund_capture.return_value = {'id': 'REF1', 'status': 'COMPLETED'}
        await RefundTicketsUseCase(uow=uow, provider_registry=provider_registry).execute(
            merchant_id=PAYPAL_MERCHANT_ID, line_item_ids=[LINE_ITEM_ID]
        )

        assert await ledger.available() == 7
        assert await ledger.available(trip_instant=LATER_TRIP_INSTANT) == 5
        assert await ledger.available(trip_instant=LATEST_TRIP_INSTANT) == 5

    @pytest.mark.asyncio
    async def test_stale_old_sku_rolls_back_whole_batch(
        self, transfer: TransferTicketsUseCase, ledger: LedgerReader
    ) -> None:
        with pytest.raises(TransferError):
            await transfer.execute(
                merchant_id=PAYPAL_MERCHANT_ID,
                requests=[
                    TransferRequest.create(line_item_id=LINE_ITEM_ID, new_sku=SKU_B),
                    TransferRequest.create(
                        line_item_id=LINE_ITEM_ID, new_sku=SKU_C, old_sku=SKU_A
                    ),
                ],
            )

        assert await ledger.available() == 5
        assert await ledger.available(trip_instant=LATER_TRIP_INSTANT) == 5

    @pytest.mark.asyncio
    async def test_refunded_item_cannot_move(
        self,
        transfer: TransferTicketsUseCase,
        uow: SqlAlchemyUnitOfWork,
        provider_registry: ProviderRegistry,
        paypal_gateway: AsyncMock,
        ledger: LedgerReader,
    ) -> None:
        paypal_gateway.refund_capture.return_value = {'id': 'REF1', 'status': 'COMPLETED'}
        await RefundTicketsUseCase(uow=uow, provider_registry=provider_registry).execute(
            merchant_id=PAYPAL_MERCHANT_ID, line_item_ids=[LINE_ITEM_ID]
        )
        assert await ledger.available() == 7

        with pytest.raises(TransferError):
            await transfer.execute(
                merchant_id=PAYPAL_MERCHANT_ID,
                requests=[TransferRequest.create(line_item_id=LINE_ITEM_ID, new_sku=SKU_B)],
            )

        assert await ledger.available() == 7
        assert await ledger.available(trip_instant=LATER_TRIP_INSTANT) == 5

    @pytest.mark.asyncio
    async def test_other_merchant_cannot_see_item(
        self,
        transfer: TransferTicketsUseCase,
        seed_merchant: Callable[[MerchantConfig], Awaitable[MerchantConfig]],
        ledger: LedgerReader,
    ) -> None:
        await seed_merchant(MerchantConfig(id=OTHER_MERCHANT_ID, payment_type=PaymentType.PAYPAL))

        with pytest.raises(NotFoundError):
            await transfer.execute(
                merchant_id=OTHER_MERCHANT_ID,
                requests=[TransferRequest.create(line_item_id=LINE_ITEM_ID, new_sku=SKU_B)],
            )

        assert await ledger.available() == 5

    @pytest.mark.asyncio
    async def test_unknown_line_item_is_not_found(self, transfer: TransferTicketsUseCase) -> None:
        with pytest.raises(NotFoundError):
            await transfer.execute(
                merchant_id=PAYPAL_MERCHANT_ID,
                requests=[TransferRequest.create(line_item_id='NOPE-0-0', new_sku=SKU_B)],
            )

    @pytest.mark.asyncio
    async def test_destination_must_be_a_slot(self, transfer: TransferTicketsUseCase) -> None:
        with pytest.raises(TransferError):
            await transfer.execute(
                merchant_id=PAYPAL_MERCHANT_ID,
                requests=[TransferRequest.create(line_item_id=LINE_ITEM_ID, new_sku='SVCFEE')],
            )
