"""
PayPal provider adapter

Webhook envelopes (v2 resources):
- capture         PAYMENT.CAPTURE.COMPLETED  -> CaptureNotice
- refund          PAYMENT.CAPTURE.REFUNDED   -> RefundNotice (capture found via the "up" link)
- checkout-order  CHECKOUT.ORDER.COMPLETED   -> OrderCompletedNotice
Legacy v1 `sale` / `payment` resources and every other event are acknowledged as ignored.
"""

from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Mapping, Optional

import orjson

from src.platform.database.unit_of_work import AbstractUnitOfWork
from src.platform.exception.exceptions import DomainError, NotFoundError
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
from src.service.reconciliation.app.interface.i_paypal_gateway import IPaypalGateway
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
from src.service.reconciliation.domain.reconciliation_error import (
    MalformedPayloadError,
    WebhookAuthenticationError,
)
from src.service.reconciliation.driven_adapter.provider.base_payment_provider import (
    BasePaymentProvider,
)


_CAPTURE_STATUS = {
    'COMPLETED': CaptureStatus.COMPLETED,
    'PARTIALLY_REFUNDED': CaptureStatus.COMPLETED,
    'PENDING': CaptureStatus.PENDING,
    'REFUNDED': CaptureStatus.REFUNDED,
}


def _amount(node: Optional[Dict[str, Any]]) -> Decimal:
    return Decimal(str((node or {}).get('value') or '0'))


def _up_link_id(resource: Dict[str, Any]) -> Optional[str]:
    for link in resource.get('links') or []:
        if link.get('rel') == 'up' and link.get('href'):
            return link['href'].rstrip('/').rsplit('/', 1)[-1]
    return None


def _related_order_id(resource: Dict[str, Any]) -> Optional[str]:
    related = (resource.get('supplementary_data') or {}).get('related_ids') or {}
    return related.get('order_id')


def _split_ids(raw: Optional[str]) -> tuple[str, ...]:
    return tuple(part.strip() for part in (raw or '').split(',') if part.strip())


# PayPal rejects a refund custom_id longer than this
_CUSTOM_ID_LIMIT = 127


def _refund_scope(order: Order, items: List[LineItem]) -> str:
    """Positions of the refunded items within the order (`0-0,0-2`), echoed back on the webhook."""
    scope = ','.join(item.id.removeprefix(f'{order.id}-') for item in items)
    if len(scope) > _CUSTOM_ID_LIMIT:
        raise DomainError(
            f'Refund of {len(items)} items of order {order.id} is too large for one PayPal '
            'refund; refund fewer items at a time'
        )
    return scope


def order_from_checkout(resource: Dict[str, Any], *, merchant_ref: Optional[str] = None) -> Order:
    """Build an Order from a v2 checkout order (webhook resource or GET /v2/checkout/orders)."""
    order_id = resource['id']

    payer_node = resource.get('payer') or {}
    name_node = payer_node.get('name') or {}
    phone_node = ((payer_node.get('phone') or {}).get('phone_number')) or {}
    payer = Payer(
        payer_id=payer_node.get('payer_id'),
        name=' '.join(
            part for part in (name_node.get('given_name'), name_node.get('surname')) if part
        ),
        email=payer_node.get('email_address') or '',
        phone=phone_node.get('national_number') or '',
    )

    merchant_id = merchant_ref or ''
    line_items: List[LineItem] = []
    captures: List[Capture] = []
    for pu_idx, unit in enumerate(resource.get('purchase_units') or []):
        merchant_id = ((unit.get('payee') or {}).get('merchant_id')) or merchant_id
        for idx, item in enumerate(unit.get('items') or []):
            line_items.append(
                LineItem(
                    id=f'{order_id}-{pu_idx}-{idx}',
                    order_id=order_id,
                    sku=item.get('sku') or '',
                    name=item.get('name') or '',
                    quantity=int(item.get('quantity') or 0),
                    unit_amount=_amount(item.get('unit_amount')),
                    description=item.get('description') or '',
                )
            )
        for capture in (unit.get('payments') or {}).get('captures') or []:
            captures.append(
                Capture(
                    id=capture['id'],
                    order_id=order_id,
                    status=_CAPTURE_STATUS.get(capture.get('status', ''), CaptureStatus.COMPLETED),
                    amount=_amount(capture.get('amount')),
                    currency=(capture.get('amount') or {}).get('currency_code') or 'USD',
                )
            )

    captured = any(capture.status != CaptureStatus.PENDING for capture in captures)
    return Order.create(
        id=order_id,
        merchant_id=merchant_id,
        provider=PaymentType.PAYPAL,
        status=OrderStatus.CAPTURED if captured else OrderStatus.CREATED,
        payer=payer,
        line_items=line_items,
        captures=captures,
    )


class PaypalProvider(BasePaymentProvider):
    payment_type = PaymentType.PAYPAL

    def __init__(
        self, *, uow: AbstractUnitOfWork, gateway: IPaypalGateway, enforce_floor: bool = False
    ) -> None:
        super().__init__(uow=uow, enforce_floor=enforce_floor)
        self.gateway = gateway

    def merchant_ids(self, config: MerchantConfig) -> List[str]:
        return config.merchant_ids()

    # ---- webhook side ----

    async def authenticate_webhook(self, *, headers: Mapping[str, str], body: bytes) -> None:
        if not await self.gateway.verify_webhook_signature(headers=headers, body=body):
            raise WebhookAuthenticationError('PayPal webhook signature verification failed')

    def parse_webhook(self, *, body: bytes) -> ParsedWebhook:
        try:
            envelope = orjson.loads(body)
        except orjson.JSONDecodeError as e:
            raise MalformedPayloadError(f'PayPal webhook is not valid JSON: {e}') from e
        if not isinstance(envelope, dict) or not envelope.get('id'):
            raise MalformedPayloadError('PayPal webhook has no event id')

        event_type = str(envelope.get('event_type') or '')
        resource_type = str(envelope.get('resource_type') or '')
        resource = envelope.get('resource')
        if not isinstance(resource, dict):
            raise MalformedPayloadError(f'PayPal webhook {envelope["id"]} has no resource')

        try:
            notice = self._classify(event_type, resource_type, resource)
        except (KeyError, TypeError, ValueError, InvalidOperation, DomainError) as e:
            raise MalformedPayloadError(
                f'PayPal {resource_type} resource of {envelope["id"]} is unreadable: {e}'
            ) from e

        return ParsedWebhook(
            event_id=str(envelope['id']),
            event_type=event_type,
            resource_type=resource_type,
            summary=str(envelope.get('summary') or ''),
            notice=notice,
        )

    def _classify(
        self, event_type: str, resource_type: str, resource: Dict[str, Any]
    ) -> WebhookNotice:
        if resource_type == 'capture' and event_type == 'PAYMENT.CAPTURE.COMPLETED':
            order_ref = _related_order_id(resource)
            return CaptureNotice(
                capture=Capture(
                    id=resource['id'],
                    order_id=order_ref or '',
                    status=CaptureStatus.COMPLETED,
                    amount=_amount(resource.get('amount')),
                    currency=(resource.get('amount') or {}).get('currency_code') or 'USD',
                ),
                order_ref=order_ref,
                merchant_ref=(resource.get('payee') or {}).get('merchant_id'),
            )

        if resource_type == 'refund' and event_type == 'PAYMENT.CAPTURE.REFUNDED':
            return RefundNotice(
                refund=Refund(
                    id=resource['id'],
                    capture_id=_up_link_id(resource),
                    status=str(resource.get('status') or 'completed').lower(),
                    amount=_amount(resource.get('amount')),
                    line_item_ids=_split_ids(resource.get('custom_id')),
                ),
                merchant_ref=(resource.get('payee') or {}).get('merchant_id'),
            )

        if resource_type == 'checkout-order' and event_type == 'CHECKOUT.ORDER.COMPLETED':
            carries_items = any(
                unit.get('items') for unit in resource.get('purchase_units') or []
            )
            order = order_from_checkout(resource) if carries_items else None
            return OrderCompletedNotice(
                order_ref=resource['id'],
                order=order,
                merchant_ref=order.merchant_id if order else None,
            )

        return UnhandledNotice(reason=f'{resource_type or "?"} / {event_type or "?"}')

    @Logger.io
    async def fetch_order(self, *, order_ref: str, merchant_ref: Optional[str] = None) -> Order:
        resource = await self.gateway.get_checkout_order(order_id=order_ref)
        try:
            return order_from_checkout(resource, merchant_ref=merchant_ref)
        except (KeyError, TypeError, ValueError, InvalidOperation) as e:
            raise MalformedPayloadError(f'PayPal order {order_ref} is unreadable: {e}') from e

    @Logger.io
    async def resolve_capture_order_ref(self, *, capture_id: str) -> Optional[str]:
        capture = await self.gateway.get_capture(capture_id=capture_id)
        return _related_order_id(capture) or _up_link_id(capture)

    # ---- operator side ----

    @Logger.io
    async def capture(self, *, config: MerchantConfig, order_id: str) -> Order:
        await self.gateway.capture_checkout_order(order_id=order_id)
        order = await self.fetch_order(order_ref=order_id, merchant_ref=config.id)
        if order.merchant_id not in self.merchant_ids(config):
            raise NotFoundError(f'Order {order_id} not found')
        await self._record_sale(order=order)
        return order

    @Logger.io
    async def refund(self, *, config: MerchantConfig, request: RefundRequest) -> RefundConfirmation:
        order = await self._load_refund_order(config=config, request=request)
        items = self._select_refund_items(order, request.line_item_ids)
        capture = self._completed_capture(order)

        # Selecting every line item refunds the whole capture
        whole_order = {item.id for item in items} == {item.id for item in order.line_items}
        amount = None if whole_order else sum(
            (item.unit_amount * item.quantity for item in items), Decimal('0')
        )

        line_item_ids = [item.id for item in items]
        response = await self.gateway.refund_capture(
            capture_id=capture.id,
            amount=amount,
            currency=capture.currency,
            custom_id='' if whole_order else _refund_scope(order, items),
            merchant_id=order.merchant_id,
        )

        refund = Refund(
            id=response['id'],
            capture_id=capture.id,
            order_id=order.id,
            status=str(response.get('status') or 'completed').lower(),
            amount=capture.amount if amount is None else amount,
            line_item_ids=tuple(line_item_ids),
        )
        _, released = await self._record_refund(refund=refund, order=order)
        return RefundConfirmation(
            refund_ids=[refund.id],
            refunded_line_item_ids=[item.id for item in released],
            status=refund.status,
        )
