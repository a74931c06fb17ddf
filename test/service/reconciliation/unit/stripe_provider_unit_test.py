"""
Unit tests for the Stripe provider adapter

Covers signature checking, event classification, payment intent hydration and
how a refund is split back across the connected accounts.
"""

from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest

from src.service.reconciliation.app.dto.webhook_notice import (
    CaptureNotice,
    OrderCompletedNotice,
    RefundNotice,
    UnhandledNotice,
)
from src.service.reconciliation.app.interface.i_stripe_gateway import IStripeGateway
from src.service.reconciliation.domain.entity.merchant_config_entity import MerchantConfig
from src.service.reconciliation.domain.entity.order_entity import Capture, LineItem, Order
from src.service.reconciliation.domain.enum.order_status import OrderStatus
from src.service.reconciliation.domain.enum.payment_type import PaymentType
from src.service.reconciliation.domain.reconciliation_error import (
    MalformedPayloadError,
    WebhookAuthenticationError,
)
from src.service.reconciliation.driven_adapter.provider.stripe_provider import StripeProvider
from test.constants import (
    SKU_A,
    STRIPE_CONNECTED_ACCOUNT,
    STRIPE_FEE_ACCOUNT,
    STRIPE_MERCHANT_ID,
    STRIPE_SECONDARY_ACCOUNT,
)
from test.service.reconciliation.payloads import (
    stripe_checkout_session,
    stripe_event,
    stripe_line_item,
    stripe_payment_intent,
    stripe_refund,
    to_body,
)


@pytest.fixture
def gateway() -> AsyncMock:
    gateway = AsyncMock(spec=IStripeGateway)
    gateway.construct_event = MagicMock(return_value={})
    return gateway


@pytest.fixture
def provider(gateway: AsyncMock) -> StripeProvider:
    return StripeProvider(uow=AsyncMock(), gateway=gateway, split_per_ticket_cents=500)


@pytest.fixture
def config() -> MerchantConfig:
    return MerchantConfig(
        id=STRIPE_MERCHANT_ID,
        payment_type=PaymentType.STRIPE,
        stripe_account=STRIPE_CONNECTED_ACCOUNT,
        stripe_secondary_account=STRIPE_SECONDARY_ACCOUNT,
        stripe_fee_account=STRIPE_FEE_ACCOUNT,
    )


@pytest.mark.unit
class TestAuthenticateWebhook:
    @pytest.mark.asyncio
    async def test_signature_header_is_matched_case_insensitively(
        self, provider: StripeProvider, gateway: AsyncMock
    ) -> None:
        await provider.authenticate_webhook(
            headers={'Stripe-Signature': 't=1,v1=abc'}, body=b'{"id": "evt_1"}'
        )

        gateway.construct_event.assert_called_once_with(
            payload=b'{"id": "evt_1"}', signature='t=1,v1=abc'
        )

    @pytest.mark.asyncio
    async def test_bad_signature_propagates(
        self, provider: StripeProvider, gateway: AsyncMock
    ) -> None:
        gateway.construct_event.side_effect = WebhookAuthenticationError()

        with pytest.raises(WebhookAuthenticationError):
            await provider.authenticate_webhook(headers={}, body=b'{}')


@pytest.mark.unit
class TestParseWebhook:
    def test_payment_intent_succeeded_becomes_capture(self, provider: StripeProvider) -> None:
        body = to_body(
            stripe_event(
                event_id='evt_1',
                event_type='payment_intent.succeeded',
                obj=stripe_payment_intent(),
            )
        )

        parsed = provider.parse_webhook(body=body)

        assert parsed.event_id == 'evt_1'
        assert parsed.resource_type == 'payment_intent'
        assert isinstance(parsed.notice, CaptureNotice)
        assert parsed.notice.capture.id == 'pi_1'
        assert parsed.notice.capture.amount == Decimal('50')
        assert parsed.notice.capture.currency == 'USD'
        assert parsed.notice.order_ref == 'pi_1'
        assert parsed.notice.merchant_ref == STRIPE_CONNECTED_ACCOUNT

    def test_merchant_ref_falls_back_to_metadata(self, provider: StripeProvider) -> None:
        body = to_body(
            stripe_event(
                event_id='evt_1',
                event_type='payment_intent.succeeded',
                obj=stripe_payment_intent(),
                account=None,
            )
        )

        parsed = provider.parse_webhook(body=body)

        assert isinstance(parsed.notice, CaptureNotice)
        assert parsed.notice.merchant_ref == STRIPE_MERCHANT_ID

    def test_paid_checkout_session_completes_order(self, provider: StripeProvider) -> None:
        body = to_body(
            stripe_event(
                event_id='evt_2',
                event_type='checkout.session.completed',
                obj=stripe_checkout_session(),
            )
        )

        parsed = provider.parse_webhook(body=body)

        assert isinstance(parsed.notice, OrderCompletedNotice)
        assert parsed.notice.order_ref == 'pi_1'

    def test_unpaid_checkout_session_is_unhandled(self, provider: StripeProvider) -> None:
        session = stripe_checkout_session()
        session['payment_status'] = 'unpaid'
        body = to_body(
            stripe_event(event_id='evt_3', event_type='checkout.session.completed', obj=session)
        )

        assert isinstance(provider.parse_webhook(body=body).notice, UnhandledNotice)

    def test_charge_refunded_uses_newest_refund(self, provider: StripeProvider) -> None:
        charge = {
            'id': 'ch_1',
            'object': 'charge',
            'payment_intent': 'pi_1',
            'refunds': {
                'data': [
                    stripe_refund(refund_id='re_2', amount_cents=2500, line_item_ids=['li_1']),
                    stripe_refund(refund_id='re_1'),
                ]
            },
        }
        body = to_body(stripe_event(event_id='evt_4', event_type='charge.refunded', obj=charge))

        parsed = provider.parse_webhook(body=body)

        assert isinstance(parsed.notice, RefundNotice)
        assert parsed.notice.refund.id == 're_2'
        assert parsed.notice.refund.capture_id == 'pi_1'
        assert parsed.notice.refund.amount == Decimal('25')
        assert parsed.notice.refund.line_item_ids == ('li_1',)

    def test_pending_refund_is_unhandled(self, provider: StripeProvider) -> None:
        body = to_body(
            stripe_event(
                event_id='evt_5',
                event_type='refund.created',
                obj=stripe_refund(status='pending'),
            )
        )

        assert isinstance(provider.parse_webhook(body=body).notice, UnhandledNotice)

    def test_unknown_event_type_is_unhandled(self, provider: StripeProvider) -> None:
        body = to_body(
            stripe_event(event_id='evt_6', event_type='customer.created', obj={'id': 'cus_1'})
        )

        assert isinstance(provider.parse_webhook(body=body).notice, UnhandledNotice)

    @pytest.mark.parametrize(
        'body',
        [b'{', b'{"type": "payment_intent.succeeded"}', b'{"id": "evt_7", "data": {}}'],
    )
    def test_unreadable_event_is_malformed(self, provider: StripeProvider, body: bytes) -> None:
        with pytest.raises(MalformedPayloadError):
            provider.parse_webhook(body=body)


@pytest.mark.unit
class TestFetchOrder:
    @pytest.mark.asyncio
    async def test_builds_order_from_intent_session_and_items(
        self, provider: StripeProvider, gateway: AsyncMock
    ) -> None:
        gateway.retrieve_payment_intent.return_value = stripe_payment_intent()
        gateway.find_checkout_session.return_value = stripe_checkout_session()
        gateway.list_checkout_line_items.return_value = [stripe_line_item()]

        order = await provider.fetch_order(order_ref='pi_1', merchant_ref=STRIPE_CONNECTED_ACCOUNT)

        gateway.retrieve_payment_intent.assert_awaited_once_with(
            payment_intent_id='pi_1', account=STRIPE_CONNECTED_ACCOUNT
        )
        assert order.id == 'pi_1'
        assert order.merchant_id == STRIPE_MERCHANT_ID
        assert order.status == OrderStatus.CAPTURED
        assert order.payer.name == 'Grace Hopper'
        assert [(item.id, item.sku, item.quantity) for item in order.line_items] == [
            ('li_1', SKU_A, 2)
        ]
        assert order.line_items[0].unit_amount == Decimal('25')
        assert [capture.id for capture in order.captures] == ['pi_1']

    @pytest.mark.asyncio
    async def test_platform_merchant_ref_is_not_a_connected_account(
        self, provider: StripeProvider, gateway: AsyncMock
    ) -> None:
        gateway.retrieve_payment_intent.return_value = stripe_payment_intent(status='processing')
        gateway.find_checkout_session.return_value = None

        order = await provider.fetch_order(order_ref='pi_1', merchant_ref=STRIPE_MERCHANT_ID)

        gateway.retrieve_payment_intent.assert_awaited_once_with(
            payment_intent_id='pi_1', account=None
        )
        gateway.list_checkout_line_items.assert_not_awaited()
        assert order.status == OrderStatus.CREATED
        assert order.captures == []


def _sold_order() -> Order:
    """pi_1: two 25.00 tickets, a service fee and a gift card."""
    rows = [
        ('li_1', SKU_A, 'Adult Ticket', 2, '25.00'),
        ('li_fee', 'SVCFEE', 'Fees', 1, '2.50'),
        ('li_gift', 'GIFT-ABC123', 'Gift card', 1, '10.00'),
    ]
    return Order.create(
        id='pi_1',
        merchant_id=STRIPE_MERCHANT_ID,
        provider=PaymentType.STRIPE,
        status=OrderStatus.CAPTURED,
        line_items=[
            LineItem(
                id=item_id,
                order_id='pi_1',
                sku=sku,
                name=name,
                quantity=quantity,
                unit_amount=Decimal(unit),
            )
            for item_id, sku, name, quantity, unit in rows
        ],
        captures=[Capture(id='pi_1', order_id='pi_1', amount=Decimal('62.50'), currency='USD')],
    )


@pytest.mark.unit
class TestSaleSplit:
    def test_tickets_split_between_main_and_secondary(
        self, provider: StripeProvider, config: MerchantConfig
    ) -> None:
        split = provider._split_cents(config=config, items=_sold_order().line_items)

        assert split == {STRIPE_CONNECTED_ACCOUNT: 4000, STRIPE_SECONDARY_ACCOUNT: 1000}

    def test_main_account_takes_all_without_secondary(self, provider: StripeProvider) -> None:
        config = MerchantConfig(
            id=STRIPE_MERCHANT_ID,
            payment_type=PaymentType.STRIPE,
            stripe_account=STRIPE_CONNECTED_ACCOUNT,
        )

        split = provider._split_cents(config=config, items=_sold_order().line_items)

        assert split == {STRIPE_CONNECTED_ACCOUNT: 5000}

    def test_platform_merchant_is_not_split(self, provider: StripeProvider) -> None:
        config = MerchantConfig(id=STRIPE_MERCHANT_ID, payment_type=PaymentType.STRIPE)

        assert provider._split_cents(config=config, items=_sold_order().line_items) == {}

    @pytest.mark.asyncio
    async def test_settle_sale_transfers_each_share_once(
        self, provider: StripeProvider, gateway: AsyncMock, config: MerchantConfig
    ) -> None:
        gateway.create_transfer.return_value = {'id': 'tr_1'}

        await provider.settle_sale(order=_sold_order(), config=config)

        transfers = {
            call.kwargs['destination']: call.kwargs
            for call in gateway.create_transfer.await_args_list
        }
        assert {dest: kwargs['amount_cents'] for dest, kwargs in transfers.items()} == {
            STRIPE_CONNECTED_ACCOUNT: 4000,
            STRIPE_SECONDARY_ACCOUNT: 1000,
        }
        main = transfers[STRIPE_CONNECTED_ACCOUNT]
        assert main['currency'] == 'usd'
        assert main['transfer_group'] == 'pi_1'
        assert main['idempotency_key'] == f'split-pi_1-{STRIPE_CONNECTED_ACCOUNT}'

    def test_merchant_ids_include_connected_account(
        self, provider: StripeProvider, config: MerchantConfig
    ) -> None:
        assert provider.merchant_ids(config) == [STRIPE_MERCHANT_ID, STRIPE_CONNECTED_ACCOUNT]
