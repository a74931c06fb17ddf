"""
Stripe provider adapter

Orders are payment intents: the payment intent id is both the order id and the
capture id, and its transfer_group ties the split transfers to the sale.

Webhook events:
- payment_intent.succeeded                  -> CaptureNotice
- checkout.session.completed (paid)         -> OrderCompletedNotice
- charge.refunded, refund.created,
  charge.refund.updated (succeeded refunds) -> RefundNotice
"""

from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Mapping, Optional

import orjson

from src.platform.database.unit_of_work import AbstractUnitOfWork
from src.platform.exception.exceptions import NotFoundError
from src.platform.logging.loguru_io import Logger
from src.service.reconciliation.app.dto.admin_dto import RefundConfirmation, RefundRequest
from src.service.reconciliation.app.dto.webhook_notice import (
    CaptureNotice,
    OrderCompletedNotice,
    ParsedWebhook,
    RefundNotice,
    UnhandledNotice,
    WebhookNotice,
)
from src.service.reconciliation.app.interface.i_stripe_gateway import IStripeGateway
from src.service.reconciliation.domain.entity.merchant_config_entity import MerchantConfig
from src.service.reconciliation.domain.entity.order_entity import (
    Capture,
    LineItem,
    Order,
    Payer,
)
from src.service.reconciliation.domain.entity.refund_entity import Refund
from src.service.reconciliation.domain.enum.order_status import CaptureStatus, OrderStatus
from src.service.reconciliation.domain.enum.payment_type import PaymentType
from src.service.reconciliation.domain.reconciliation_error import MalformedPayloadError
from src.service.reconciliation.domain.value_object.slot_key import is_slot_item
from src.service.reconciliation.driven_adapter.provider.base_payment_provider import (
    BasePaymentProvider,
)


_REFUND_EVENTS = ('charge.refunded', 'refund.created', 'charge.refund.updated')


def _cents_to_amount(cents: Optional[int]) -> Decimal:
    return Decimal(int(cents or 0)) / 100


def _split_ids(raw: Optional[str]) -> tuple[str, ...]:
    return tuple(part.strip() for part in (raw or '').split(',') if part.strip())


def _connected_account(merchant_ref: Optional[str]) -> Optional[str]:
    return merchant_ref if merchant_ref and merchant_ref.startswith('acct_') else None


class StripeProvider(BasePaymentProvider):
    payment_type = PaymentType.STRIPE

    def __init__(
        self,
        *,
        uow: AbstractUnitOfWork,
        gateway: IStripeGateway,
        split_per_ticket_cents: int = 500,
        enforce_floor: bool = False,
    ) -> None:
        super().__init__(uow=uow, enforce_floor=enforce_floor)
        self.gateway = gateway
        self.split_per_ticket_cents = split_per_ticket_cents

    def merchant_ids(self, config: MerchantConfig) -> List[str]:
        return [mid for mid in (config.id, config.stripe_account) if mid]

    # ---- webhook side ----

    async def authenticate_webhook(self, *, headers: Mapping[str, str], body: bytes) -> None:
        signature = {key.lower(): value for key, value in headers.items()}.get(
            'stripe-signature', ''
        )
        self.gateway.construct_event(payload=body, signature=signature)

    def parse_webhook(self, *, body: bytes) -> ParsedWebhook:
        try:
            event = orjson.loads(body)
        except orjson.JSONDecodeError as e:
            raise MalformedPayloadError(f'Stripe event is not valid JSON: {e}') from e
        if not isinstance(event, dict) or not event.get('id'):
            raise MalformedPayloadError('Stripe event has no id')

        event_type = str(event.get('type') or '')
        obj = (event.get('data') or {}).get('object')
        if not isinstance(obj, dict):
            raise MalformedPayloadError(f'Stripe event {event["id"]} has no data.object')

        try:
            notice = self._classify(event_type, obj, account=event.get('account'))
        except (KeyError, TypeError, ValueError, InvalidOperation) as e:
            raise MalformedPayloadError(
                f'Stripe {event_type} object of {event["id"]} is unreadable: {e}'
            ) from e

        return ParsedWebhook(
            event_id=str(event['id']),
            event_type=event_type,
            resource_type=str(obj.get('object') or ''),
            summary=f'{event_type} {obj.get("id", "")}'.strip(),
            notice=notice,
        )

    def _classify(
        self, event_type: str, obj: Dict[str, Any], *, account: Optional[str]
    ) -> WebhookNotice:
        merchant_ref = account or (obj.get('metadata') or {}).get('merchant_id')

        if event_type == 'payment_intent.succeeded':
            return CaptureNotice(
                capture=Capture(
                    id=obj['id'],
                    order_id=obj['id'],
                    status=CaptureStatus.COMPLETED,
                    amount=_cents_to_amount(obj.get('amount_received', obj.get('amount'))),
                    currency=str(obj.get('currency') or 'usd').upper(),
                ),
                order_ref=obj['id'],
                merchant_ref=merchant_ref,
            )

        if event_type == 'checkout.session.completed':
            if obj.get('payment_status') != 'paid' or not obj.get('payment_intent'):
                return UnhandledNotice(reason=f'checkout session {obj.get("id")} not paid')
            return OrderCompletedNotice(order_ref=obj['payment_intent'], merchant_ref=merchant_ref)

        if event_type in _REFUND_EVENTS:
            refund_obj = obj
            if obj.get('object') == 'charge':
                refunds = (obj.get('refunds') or {}).get('data') or []
                if not refunds:
                    return UnhandledNotice(reason=f'charge {obj.get("id")} lists no refunds')
                refund_obj = refunds[0]  # newest first
            if refund_obj.get('status') != 'succeeded':
                return UnhandledNotice(
                    reason=f'refund {refund_obj.get("id")} is {refund_obj.get("status")}'
                )

            payment_intent = refund_obj.get('payment_intent') or obj.get('payment_intent')
            metadata = refund_obj.get('metadata') or {}
            return RefundNotice(
                refund=Refund(
                    id=refund_obj['id'],
                    capture_id=payment_intent,
                    order_id=payment_intent,
                    status='completed',
                    amount=_cents_to_amount(refund_obj.get('amount')),
                    line_item_ids=_split_ids(metadata.get('line_item_ids')),
                ),
                merchant_ref=account or metadata.get('merchant_id'),
            )

        return UnhandledNotice(reason=event_type or '?')

    @Logger.io
    async def fetch_order(self, *, order_ref: str, merchant_ref: Optional[str] = None) -> Order:
        account = _connected_account(merchant_ref)
        intent = await self.gateway.retrieve_payment_intent(
            payment_intent_id=order_ref, account=account
        )
        session = await self.gateway.find_checkout_session(
            payment_intent_id=order_ref, account=account
        )
        raw_items = (
            await self.gateway.list_checkout_line_items(session_id=session['id'], account=account)
            if session
            else []
        )

        try:
            return self._order_from_intent(
                intent, session=session, raw_items=raw_items, merchant_ref=merchant_ref
            )
        except (KeyError, TypeError, ValueError, InvalidOperation) as e:
            raise MalformedPayloadError(f'Stripe payment {order_ref} is unreadable: {e}') from e

    def _order_from_intent(
        self,
        intent: Dict[str, Any],
        *,
        session: Optional[Dict[str, Any]],
        raw_items: List[Dict[str, Any]],
        merchant_ref: Optional[str],
    ) -> Order:
        order_id = intent['id']
        line_items = []
        for raw in raw_items:
            price = raw.get('price') or {}
            product = price.get('product')
            product = product if isinstance(product, dict) else {}
            line_items.append(
                LineItem(
                    id=raw['id'],
                    order_id=order_id,
                    sku=(product.get('metadata') or {}).get('sku') or '',
                    name=raw.get('description') or product.get('name') or '',
                    quantity=int(raw.get('quantity') or 1),
                    unit_amount=_cents_to_amount(price.get('unit_amount')),
                    description=product.get('description') or '',
                )
            )

        details = (session or {}).get('customer_details') or {}
        succeeded = intent.get('status') == 'succeeded'
        captures = (
            [
                Capture(
                    id=order_id,
                    order_id=order_id,
                    status=CaptureStatus.COMPLETED,
                    amount=_cents_to_amount(intent.get('amount_received')),
                    currency=str(intent.get('currency') or 'usd').upper(),
                )
            ]
            if succeeded
            else []
        )
        created = intent.get('created')
        return Order.create(
            id=order_id,
            merchant_id=(intent.get('metadata') or {}).get('merchant_id') or merchant_ref or '',
            provider=PaymentType.STRIPE,
            status=OrderStatus.CAPTURED if succeeded else OrderStatus.CREATED,
            payer=Payer(
                payer_id=intent.get('customer'),
                name=details.get('name') or '',
                email=details.get('email') or '',
                phone=details.get('phone') or '',
            ),
            line_items=line_items,
            captures=captures,
            created_at=datetime.fromtimestamp(created, tz=timezone.utc) if created else None,
        )

    async def resolve_capture_order_ref(self, *, capture_id: str) -> Optional[str]:
        return capture_id

    # ---- operator side ----

    @Logger.io
    async def capture(self, *, config: MerchantConfig, order_id: str) -> Order:
        account = _connected_account(config.stripe_account)
        await self.gateway.capture_payment_intent(payment_intent_id=order_id, account=account)
        order = await self.fetch_order(order_ref=order_id, merchant_ref=config.id)
        if order.merchant_id not in self.merchant_ids(config):
            raise NotFoundError(f'Order {order_id} not found')
        await self.settle_sale(order=order, config=config)
        await self._record_sale(order=order)
        return order

    def _split_cents(self, *, config: MerchantConfig, items: List[LineItem]) -> Dict[str, int]:
        """
        Cents each connected account earns from `items`

        Only ticket items are split: the secondary account earns a flat share per
        ticket and the main account the rest. Without a main account nothing is
        transferred; without a secondary account the main account earns it all.
        """
        split: Dict[str, int] = {}
        if not config.stripe_account:
            return split
        for item in items:
            if not is_slot_item(item.sku, item.name):
                continue
            gross = int(item.unit_amount * 100) * item.quantity
            share = item.quantity * self.split_per_ticket_cents
            if config.stripe_secondary_account:
                split[config.stripe_account] = split.get(config.stripe_account, 0) + gross - share
                split[config.stripe_secondary_account] = (
                    split.get(config.stripe_secondary_account, 0) + share
                )
            else:
                split[config.stripe_account] = split.get(config.stripe_account, 0) + gross
        return {destination: cents for destination, cents in split.items() if cents > 0}

    @Logger.io
    async def settle_sale(self, *, order: Order, config: MerchantConfig) -> None:
        currency = order.captures[0].currency.lower() if order.captures else 'usd'
        for destination, cents in self._split_cents(config=config, items=order.line_items).items():
            transfer = await self.gateway.create_transfer(
                destination=destination,
                amount_cents=cents,
                currency=currency,
                transfer_group=order.id,
                idempotency_key=f'split-{order.id}-{destination}',
                metadata={'merchant_id': config.id},
            )
            Logger.base.info(
                f'💸 [Stripe] Transferred {cents} cents of {order.id} to {destination} '
                f'({transfer.get("id")})'
            )

    @Logger.io
    async def refund(self, *, config: MerchantConfig, request: RefundRequest) -> RefundConfirmation:
        order = await self._load_refund_order(config=config, request=request)
        items = self._select_refund_items(order, request.line_item_ids)
        line_item_ids = [item.id for item in items]

        total_cents = sum(int(item.unit_amount * 100) * item.quantity for item in items)
        metadata = {'line_item_ids': ','.join(line_item_ids), 'merchant_id': config.id}

        # Pull back what the sale-time split paid each account for these items, once per account
        owed = self._split_cents(config=config, items=items)
        for transfer in await self.gateway.list_transfers(transfer_group=order.id):
            destination = transfer.get('destination')
            if not destination or destination == config.stripe_fee_account:
                continue
            reverse_cents = owed.pop(destination, 0)
            if reverse_cents <= 0:
                continue
            await self.gateway.reverse_transfer(
                transfer_id=transfer['id'], amount_cents=reverse_cents, metadata=metadata
            )
            Logger.base.info(
                f'↩️ [Stripe] Reversed {reverse_cents} cents of {transfer["id"]} ({destination})'
            )

        response = await self.gateway.create_refund(
            payment_intent_id=order.id, amount_cents=total_cents, metadata=metadata
        )

        refund = Refund(
            id=response['id'],
            capture_id=order.id,
            order_id=order.id,
            status=str(response.get('status') or 'succeeded'),
            amount=_cents_to_amount(total_cents),
            line_item_ids=tuple(line_item_ids),
        )
        _, released = await self._record_refund(refund=refund, order=order)
        return RefundConfirmation(
            refund_ids=[refund.id],
            refunded_line_item_ids=[item.id for item in released],
            status=refund.status,
        )
