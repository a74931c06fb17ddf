"""
Stripe gateway

The stripe SDK is synchronous; every call runs in a worker thread under a
deadline so a slow Stripe API never pins the event loop.
"""

from functools import partial
import hashlib
from typing import Any, Callable, Dict, List, Optional

import anyio
import stripe

from src.platform.logging.loguru_io import Logger
from src.service.reconciliation.app.interface.i_stripe_gateway import IStripeGateway
from src.service.reconciliation.domain.reconciliation_error import (
    MalformedPayloadError,
    ProviderDependencyError,
    WebhookAuthenticationError,
)


class StripeGateway(IStripeGateway):
    def __init__(
        self,
        *,
        api_key: str,
        webhook_secret: str,
        webhook_tolerance_seconds: int = 300,
        timeout_seconds: float = 10.0,
    ) -> None:
        self._api_key = api_key
        self._webhook_secret = webhook_secret
        self.webhook_tolerance_seconds = webhook_tolerance_seconds
        self.timeout_seconds = timeout_seconds

    async def _call(self, func: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
        try:
            with anyio.fail_after(self.timeout_seconds):
                # The worker thread is abandoned on timeout; the SDK call cannot be interrupted
                return await anyio.to_thread.run_sync(
                    partial(func, *args, api_key=self._api_key, **kwargs), abandon_on_cancel=True
                )
        except TimeoutError as e:
            raise ProviderDependencyError(f'Stripe call {func.__qualname__} timed out') from e
        except stripe.StripeError as e:
            raise ProviderDependencyError(f'Stripe call {func.__qualname__} failed: {e}') from e

    def construct_event(self, *, payload: bytes, signature: str) -> Dict[str, Any]:
        if not signature:
            raise WebhookAuthenticationError('Missing Stripe-Signature header')
        try:
            event = stripe.Webhook.construct_event(
                payload,
                signature,
                self._webhook_secret,
                tolerance=self.webhook_tolerance_seconds,
            )
        except stripe.SignatureVerificationError as e:
            raise WebhookAuthenticationError(
                f'Stripe signature rejected: {e.user_message or e}'
            ) from e
        except ValueError as e:
            raise MalformedPayloadError(f'Stripe payload is not valid JSON: {e}') from e
        return event.to_dict()

    @Logger.io
    async def retrieve_payment_intent(
        self, *, payment_intent_id: str, account: Optional[str] = None
    ) -> Dict[str, Any]:
        intent = await self._call(
            stripe.PaymentIntent.retrieve, payment_intent_id, stripe_account=account
        )
        return intent.to_dict()

    @Logger.io
    async def capture_payment_intent(
        self, *, payment_intent_id: str, account: Optional[str] = None
    ) -> Dict[str, Any]:
        intent = await self._call(
            stripe.PaymentIntent.capture, payment_intent_id, stripe_account=account
        )
        return intent.to_dict()

    @Logger.io
    async def find_checkout_session(
        self, *, payment_intent_id: str, account: Optional[str] = None
    ) -> Optional[Dict[str, Any]]:
        sessions = await self._call(
            stripe.checkout.Session.list,
            payment_intent=payment_intent_id,
            limit=1,
            stripe_account=account,
        )
        if not sessions.data:
            return None
        return sessions.data[0].to_dict()

    @Logger.io
    async def list_checkout_line_items(
        self, *, session_id: str, account: Optional[str] = None
    ) -> List[Dict[str, Any]]:
        def _collect(**kwargs: Any) -> List[Dict[str, Any]]:
            page = stripe.checkout.Session.list_line_items(session_id, **kwargs)
            return [item.to_dict() for item in page.auto_paging_iter()]

        return await self._call(
            _collect, expand=['data.price.product'], limit=100, stripe_account=account
        )

    @Logger.io
    async def create_transfer(
        self,
        *,
        destination: str,
        amount_cents: int,
        currency: str,
        transfer_group: str,
        idempotency_key: str,
        metadata: Dict[str, str],
    ) -> Dict[str, Any]:
        transfer = await self._call(
            stripe.Transfer.create,
            destination=destination,
            amount=amount_cents,
            currency=currency,
            transfer_group=transfer_group,
            metadata=metadata,
            idempotency_key=idempotency_key,
        )
        return transfer.to_dict()

    @Logger.io
    async def list_transfers(self, *, transfer_group: str) -> List[Dict[str, Any]]:
        def _collect(**kwargs: Any) -> List[Dict[str, Any]]:
            page = stripe.Transfer.list(**kwargs)
            return [transfer.to_dict() for transfer in page.auto_paging_iter()]

        return await self._call(_collect, transfer_group=transfer_group, limit=100)

    @Logger.io
    async def reverse_transfer(
        self, *, transfer_id: str, amount_cents: int, metadata: Dict[str, str]
    ) -> Dict[str, Any]:
        reversal = await self._call(
            stripe.Transfer.create_reversal,
            transfer_id,
            amount=amount_cents,
            metadata=metadata,
        )
        return reversal.to_dict()

    @Logger.io
    async def create_refund(
        self, *, payment_intent_id: str, amount_cents: int, metadata: Dict[str, str]
    ) -> Dict[str, Any]:
        scope = metadata.get('line_item_ids', '')
        scope_digest = hashlib.sha256(scope.encode()).hexdigest()[:16]
        refund = await self._call(
            stripe.Refund.create,
            payment_intent=payment_intent_id,
            amount=amount_cents,
            metadata=metadata,
            idempotency_key=f'refund-{payment_intent_id}-{scope_digest}',
        )
        return refund.to_dict()
