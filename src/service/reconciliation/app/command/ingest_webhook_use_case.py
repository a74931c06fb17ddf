from functools import partial
import time
from typing import Awaitable, Callable, Mapping, Optional, Self, Tuple

import attrs
from dependency_injector.wiring import Provide, inject
from fastapi import Depends
from opentelemetry import trace
import orjson
import uuid_utils

from src.platform.config.di import Container
from src.platform.database.unit_of_work import AbstractUnitOfWork, get_unit_of_work
from src.platform.logging.loguru_io import Logger
from src.platform.metrics.reconciliation_metrics import metrics
from src.service.reconciliation.app.command.reconciliation_recorder import ReconciliationRecorder
from src.service.reconciliation.app.dto.admin_dto import WebhookResult
from src.service.reconciliation.app.dto.webhook_notice import (
    CaptureNotice,
    OrderCompletedNotice,
    ParsedWebhook,
    RefundNotice,
)
from src.service.reconciliation.app.interface.i_notification_dispatcher import (
    INotificationDispatcher,
)
from src.service.reconciliation.app.interface.i_payment_provider import IPaymentProvider
from src.service.reconciliation.app.interface.i_provider_registry import IProviderRegistry
from src.service.reconciliation.domain.entity.merchant_config_entity import MerchantConfig
from src.service.reconciliation.domain.entity.order_entity import Order
from src.service.reconciliation.domain.entity.webhook_event_entity import WebhookEvent
from src.service.reconciliation.domain.enum.ingest_outcome import IngestOutcome
from src.service.reconciliation.domain.enum.order_status import OrderStatus
from src.service.reconciliation.domain.enum.payment_type import PaymentType
from src.service.reconciliation.domain.enum.webhook_event_status import WebhookEventStatus
from src.service.reconciliation.domain.reconciliation_error import (
    MalformedPayloadError,
    ProviderDependencyError,
    WebhookAuthenticationError,
)


Notification = Callable[[], Awaitable[None]]

_FINAL_STATUS = {
    IngestOutcome.APPLIED: WebhookEventStatus.PROCESSED,
    IngestOutcome.ALREADY_PROCESSED: WebhookEventStatus.DUPLICATE,
    IngestOutcome.IGNORED: WebhookEventStatus.IGNORED,
}


def _peek_event_id(body: bytes) -> Optional[str]:
    """Event id of a body that has not been authenticated or parsed yet."""
    try:
        envelope = orjson.loads(body)
    except orjson.JSONDecodeError:
        return None
    if isinstance(envelope, dict) and envelope.get('id'):
        return str(envelope['id'])
    return None


class IngestWebhookUseCase:
    """
    Turn one provider delivery into ledger writes, exactly once

    Flow:
    1. Authenticate the raw body; any failure is audited under a fresh id and touches nothing else
    2. Parse into a provider-neutral notice; unreadable bodies are audited as `malformed`
    3. Dedup on the resource id and apply capture / order-completed / refund notices
    4. Audit the final status, then notify (notification failures never fail the delivery)

    Remote order fetches happen between transactions, never inside one.
    """

    def __init__(
        self,
        *,
        uow: AbstractUnitOfWork,
        provider_registry: IProviderRegistry,
        notification_dispatcher: INotificationDispatcher,
    ) -> None:
        self.uow = uow
        self.provider_registry = provider_registry
        self.notification_dispatcher = notification_dispatcher
        self.recorder = ReconciliationRecorder(uow=uow)
        self.tracer = trace.get_tracer(__name__)

    @classmethod
    @inject
    def depends(
        cls,
        uow: AbstractUnitOfWork = Depends(get_unit_of_work),
        provider_registry: IProviderRegistry = Depends(Provide[Container.provider_registry]),
        notification_dispatcher: INotificationDispatcher = Depends(
            Provide[Container.notification_dispatcher]
        ),
    ) -> Self:
        return cls(
            uow=uow,
            provider_registry=provider_registry,
            notification_dispatcher=notification_dispatcher,
        )

    @Logger.io
    async def execute(
        self, *, payment_type: PaymentType, headers: Mapping[str, str], body: bytes
    ) -> WebhookResult:
        """
        Args:
            payment_type: Provider the delivery came from (selected by the route)
            headers: Transport headers carrying the signature
            body: Raw request body, byte for byte as signed

        Returns:
            Event id, dedup outcome and the order the notice applied to

        Raises:
            WebhookAuthenticationError: Signature does not match (400)
            MalformedPayloadError: Body or resource cannot be read (400)
            ProviderDependencyError: Remote order lookup failed (424, provider retries)
        """
        started = time.perf_counter()
        provider = self.provider_registry.provider_for(payment_type, uow=self.uow)
        raw_body = body.decode('utf-8', errors='replace')

        with self.tracer.start_as_current_span(
            'use_case.ingest_webhook', attributes={'webhook.provider': payment_type.value}
        ) as span:
            try:
                await provider.authenticate_webhook(headers=headers, body=body)
            except WebhookAuthenticationError:
                await self._audit_unverified(
                    payment_type=payment_type, body=body, status=WebhookEventStatus.NO_VERIFY
                )
                Logger.base.warning(f'🚫 [Webhook] {payment_type} delivery failed verification')
                raise
            except MalformedPayloadError:
                # Signature checked out but the body could not be read
                await self._audit_unverified(
                    payment_type=payment_type, body=body, status=WebhookEventStatus.MALFORMED
                )
                raise
            except ProviderDependencyError:
                await self._audit_unverified(
                    payment_type=payment_type, body=body, status=WebhookEventStatus.FAILED
                )
                metrics.record_provider_failure(provider=payment_type.value)
                Logger.base.warning(f'⏳ [Webhook] {payment_type} verification unavailable')
                raise

            try:
                parsed = provider.parse_webhook(body=body)
            except MalformedPayloadError:
                await self._audit(
                    WebhookEvent(
                        id=_peek_event_id(body) or str(uuid_utils.uuid7()),
                        provider=payment_type,
                        raw_body=raw_body,
                        status=WebhookEventStatus.MALFORMED,
                    )
                )
                metrics.record_webhook(
                    provider=payment_type.value, status=WebhookEventStatus.MALFORMED.value
                )
                raise

            span.set_attribute('webhook.event_id', parsed.event_id)
            span.set_attribute('webhook.event_type', parsed.event_type)
            event = WebhookEvent(
                id=parsed.event_id,
                provider=payment_type,
                raw_body=raw_body,
                event_type=parsed.event_type,
                resource_type=parsed.resource_type,
                summary=parsed.summary,
            )
            await self._audit(event)

            try:
                outcome, order_id, notification = await self._apply(
                    provider=provider, parsed=parsed
                )
            except Exception as e:
                await self._audit(event.with_status(WebhookEventStatus.FAILED))
                metrics.record_webhook(
                    provider=payment_type.value, status=WebhookEventStatus.FAILED.value
                )
                if isinstance(e, ProviderDependencyError):
                    metrics.record_provider_failure(provider=payment_type.value)
                raise

            status = _FINAL_STATUS[outcome]
            await self._audit(event.with_status(status))
            metrics.record_webhook(
                provider=payment_type.value,
                status=status.value,
                duration=time.perf_counter() - started,
            )
            span.set_attribute('webhook.outcome', outcome.value)

        Logger.base.info(
            f'📬 [Webhook] {payment_type} {parsed.event_type} {parsed.event_id} -> {status}'
        )
        if notification is not None:
            await self._dispatch(notification, event_id=parsed.event_id)
        return WebhookResult(event_id=parsed.event_id, outcome=outcome, order_id=order_id)

    async def _audit(self, event: WebhookEvent) -> None:
        async with self.uow:
            await self.uow.webhook_event_repo.save(event=event)
            await self.uow.commit()

    async def _audit_unverified(
        self, *, payment_type: PaymentType, body: bytes, status: WebhookEventStatus
    ) -> None:
        # Bodies that were never authenticated never overwrite the audit row of a real event id
        claimed = _peek_event_id(body)
        await self._audit(
            WebhookEvent(
                id=str(uuid_utils.uuid7()),
                provider=payment_type,
                raw_body=body.decode('utf-8', errors='replace'),
                summary=f'claimed event id {claimed}' if claimed else '',
                status=status,
            )
        )
        metrics.record_webhook(provider=payment_type.value, status=status.value)

    async def _dispatch(self, notification: Notification, *, event_id: str) -> None:
        try:
            await notification()
        except Exception as e:
            Logger.base.warning(f'📧 [Webhook] Notification for {event_id} failed: {e}')

    async def _apply(
        self, *, provider: IPaymentProvider, parsed: ParsedWebhook
    ) -> Tuple[IngestOutcome, Optional[str], Optional[Notification]]:
        notice = parsed.notice
        if isinstance(notice, CaptureNotice):
            return await self._apply_capture(provider=provider, notice=notice)
        if isinstance(notice, OrderCompletedNotice):
            return await self._apply_order_completed(provider=provider, notice=notice)
        if isinstance(notice, RefundNotice):
            return await self._apply_refund(provider=provider, notice=notice)

        Logger.base.info(f'🤷 [Webhook] Ignoring {parsed.event_id}: {notice.reason}')
        return IngestOutcome.IGNORED, None, None

    async def _merchant_config(self, reference: Optional[str]) -> Optional[MerchantConfig]:
        if not reference:
            return None
        return await self.uow.merchant_config_repo.find_by_reference(reference=reference)

    async def _settle(
        self, *, provider: IPaymentProvider, order: Order, merchant_ref: Optional[str]
    ) -> None:
        # Runs outside the write transaction so a failed payout leaves nothing recorded
        async with self.uow:
            config = await self._merchant_config(merchant_ref or order.merchant_id)
        if config is not None:
            await provider.settle_sale(order=order, config=config)

    async def _apply_capture(
        self, *, provider: IPaymentProvider, notice: CaptureNotice
    ) -> Tuple[IngestOutcome, Optional[str], Optional[Notification]]:
        order_ref = notice.order_ref
        async with self.uow:
            if await self.uow.order_query_repo.capture_exists(capture_id=notice.capture.id):
                stored = await self.uow.order_query_repo.get_capture(capture_id=notice.capture.id)
                return (
                    IngestOutcome.ALREADY_PROCESSED,
                    stored.order_id if stored else order_ref,
                    None,
                )
            order = (
                await self.uow.order_query_repo.get_order(order_id=order_ref)
                if order_ref
                else None
            )

        fetched = order is None
        if fetched:
            if not order_ref:
                order_ref = await provider.resolve_capture_order_ref(capture_id=notice.capture.id)
                if not order_ref:
                    raise MalformedPayloadError(
                        f'Capture {notice.capture.id} does not link to an order'
                    )
                async with self.uow:
                    order = await self.uow.order_query_repo.get_order(order_id=order_ref)
                fetched = order is None
            if fetched:
                order = await provider.fetch_order(
                    order_ref=order_ref, merchant_ref=notice.merchant_ref
                )
                await self._settle(provider=provider, order=order, merchant_ref=notice.merchant_ref)

        assert order is not None
        capture = attrs.evolve(notice.capture, order_id=order.id)
        sale_outcome = IngestOutcome.ALREADY_PROCESSED
        async with self.uow:
            if fetched:
                sale_outcome = await self.recorder.record_sale(
                    order=order.advance_to(OrderStatus.CAPTURED)
                )
            capture_outcome = await self.recorder.record_capture(capture=capture)
            await self.recorder.advance_order_status(
                order_id=order.id, status=OrderStatus.CAPTURED
            )
            config = await self._merchant_config(notice.merchant_ref or order.merchant_id)
            await self.uow.commit()

        applied = IngestOutcome.APPLIED in (sale_outcome, capture_outcome)
        notification = (
            partial(self.notification_dispatcher.notify_purchase, order=order, config=config)
            if sale_outcome == IngestOutcome.APPLIED
            else None
        )
        return (
            IngestOutcome.APPLIED if applied else IngestOutcome.ALREADY_PROCESSED,
            order.id,
            notification,
        )

    async def _apply_order_completed(
        self, *, provider: IPaymentProvider, notice: OrderCompletedNotice
    ) -> Tuple[IngestOutcome, Optional[str], Optional[Notification]]:
        async with self.uow:
            stored = await self.uow.order_query_repo.get_order(order_id=notice.order_ref)
            if stored is not None:
                await self.recorder.advance_order_status(
                    order_id=stored.id, status=OrderStatus.CAPTURED
                )
                await self.uow.commit()
                return IngestOutcome.ALREADY_PROCESSED, stored.id, None

        order = notice.order or await provider.fetch_order(
            order_ref=notice.order_ref, merchant_ref=notice.merchant_ref
        )
        await self._settle(provider=provider, order=order, merchant_ref=notice.merchant_ref)
        async with self.uow:
            outcome = await self.recorder.record_sale(order=order.advance_to(OrderStatus.CAPTURED))
            config = await self._merchant_config(notice.merchant_ref or order.merchant_id)
            await self.uow.commit()

        notification = (
            partial(self.notification_dispatcher.notify_purchase, order=order, config=config)
            if outcome == IngestOutcome.APPLIED
            else None
        )
        return outcome, order.id, notification

    async def _hydrate_refund_order(
        self, *, provider: IPaymentProvider, notice: RefundNotice
    ) -> Order:
        refund = notice.refund
        order_ref = refund.order_id
        if not order_ref and refund.capture_id:
            order_ref = await provider.resolve_capture_order_ref(capture_id=refund.capture_id)
        if not order_ref:
            raise MalformedPayloadError(f'Refund {refund.id} does not link to an order')

        async with self.uow:
            order = await self.uow.order_query_repo.get_order(order_id=order_ref)
        if order is not None:
            return order

        # A refund can arrive before the sale it reverses was ever delivered
        order = await provider.fetch_order(order_ref=order_ref, merchant_ref=notice.merchant_ref)
        async with self.uow:
            await self.recorder.record_sale(order=order.advance_to(OrderStatus.CAPTURED))
            await self.uow.commit()
        return order

    async def _apply_refund(
        self, *, provider: IPaymentProvider, notice: RefundNotice
    ) -> Tuple[IngestOutcome, Optional[str], Optional[Notification]]:
        refund = notice.refund
        order: Optional[Order] = None
        async with self.uow:
            if await self.uow.order_query_repo.refund_exists(refund_id=refund.id):
                return IngestOutcome.ALREADY_PROCESSED, refund.order_id, None
            if refund.capture_id:
                capture = await self.uow.order_query_repo.get_capture(capture_id=refund.capture_id)
                if capture is not None:
                    order = await self.uow.order_query_repo.get_order(order_id=capture.order_id)
            if order is None and refund.order_id:
                order = await self.uow.order_query_repo.get_order(order_id=refund.order_id)

        if order is None:
            order = await self._hydrate_refund_order(provider=provider, notice=notice)

        refund = attrs.evolve(refund, order_id=order.id)
        async with self.uow:
            outcome, released = await self.recorder.record_refund(refund=refund, order=order)
            config = await self._merchant_config(notice.merchant_ref or order.merchant_id)
            await self.uow.commit()

        notification = (
            partial(
                self.notification_dispatcher.notify_refund,
                order=order,
                refunded_items=released,
                config=config,
            )
            if outcome == IngestOutcome.APPLIED and released
            else None
        )
        return outcome, order.id, notification
