"""
PayPal REST API client

- OAuth2 client-credentials token, cached until shortly before it expires
- Every call has a bounded timeout; transport errors and non-2xx answers
  surface as ProviderDependencyError (HTTP 424) so PayPal redelivers the webhook
"""

import base64
from decimal import Decimal
import hashlib
import time
from typing import Any, Dict, Mapping, Optional

import anyio
import httpx
import orjson

from src.platform.logging.loguru_io import Logger
from src.service.reconciliation.app.interface.i_paypal_gateway import IPaypalGateway
from src.service.reconciliation.domain.reconciliation_error import ProviderDependencyError


# Transmission headers PayPal signs each webhook delivery with
_TRANSMISSION_HEADERS = {
    'auth_algo': 'paypal-auth-algo',
    'cert_url': 'paypal-cert-url',
    'transmission_id': 'paypal-transmission-id',
    'transmission_sig': 'paypal-transmission-sig',
    'transmission_time': 'paypal-transmission-time',
}


class PaypalApiClient(IPaypalGateway):
    def __init__(
        self,
        *,
        base_url: str,
        client_id: str,
        client_secret: str,
        webhook_id: str,
        timeout_seconds: float = 10.0,
        token_refresh_margin_seconds: int = 30,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.base_url = base_url.rstrip('/')
        self.client_id = client_id
        self._client_secret = client_secret
        self.webhook_id = webhook_id
        self.timeout = httpx.Timeout(timeout_seconds)
        self.token_refresh_margin_seconds = token_refresh_margin_seconds
        self._transport = transport
        self._access_token: Optional[str] = None
        self._token_expires_at = 0.0
        self._token_lock = anyio.Lock()

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url, timeout=self.timeout, transport=self._transport
        )

    async def _get_access_token(self) -> str:
        async with self._token_lock:
            now = time.monotonic()
            refresh_at = self._token_expires_at - self.token_refresh_margin_seconds
            if self._access_token and now < refresh_at:
                return self._access_token

            Logger.base.info('🔑 [PayPal] Requesting access token')
            try:
                async with self._client() as client:
                    response = await client.post(
                        '/v1/oauth2/token',
                        data={'grant_type': 'client_credentials'},
                        auth=(self.client_id, self._client_secret),
                        headers={'Accept': 'application/json'},
                    )
            except httpx.HTTPError as e:
                raise ProviderDependencyError(f'PayPal token request failed: {e}') from e
            if response.status_code >= 400:
                raise ProviderDependencyError(
                    f'PayPal token request failed with {response.status_code}'
                )

            payload = orjson.loads(response.content)
            self._access_token = payload['access_token']
            self._token_expires_at = now + float(payload.get('expires_in', 0))
            return self._access_token

    async def _send(
        self,
        method: str,
        path: str,
        *,
        content: Optional[bytes] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> Dict[str, Any]:
        token = await self._get_access_token()
        request_headers = {
            'Authorization': f'Bearer {token}',
            'Content-Type': 'application/json',
            **(headers or {}),
        }
        try:
            async with self._client() as client:
                response = await client.request(
                    method, path, content=content, headers=request_headers
                )
        except httpx.HTTPError as e:
            raise ProviderDependencyError(f'PayPal {method} {path} failed: {e}') from e

        if response.status_code >= 400:
            Logger.base.warning(
                f'⚠️ [PayPal] {method} {path} -> {response.status_code}: {response.text[:500]}'
            )
            raise ProviderDependencyError(
                f'PayPal {method} {path} failed with {response.status_code}'
            )
        if not response.content:
            return {}
        return orjson.loads(response.content)

    @Logger.io
    async def verify_webhook_signature(self, *, headers: Mapping[str, str], body: bytes) -> bool:
        lowered = {key.lower(): value for key, value in headers.items()}
        if not all(lowered.get(header) for header in _TRANSMISSION_HEADERS.values()):
            return False

        verify_request: Dict[str, Any] = {
            field: lowered[header] for field, header in _TRANSMISSION_HEADERS.items()
        }
        verify_request['webhook_id'] = self.webhook_id
        # The event must be echoed byte for byte, re-serializing breaks the signature
        verify_request['webhook_event'] = orjson.Fragment(body)

        response = await self._send(
            'POST',
            '/v1/notifications/verify-webhook-signature',
            content=orjson.dumps(verify_request),
        )
        return response.get('verification_status') == 'SUCCESS'

    @Logger.io
    async def get_checkout_order(self, *, order_id: str) -> Dict[str, Any]:
        return await self._send('GET', f'/v2/checkout/orders/{order_id}')

    @Logger.io
    async def capture_checkout_order(self, *, order_id: str) -> Dict[str, Any]:
        return await self._send('POST', f'/v2/checkout/orders/{order_id}/capture', content=b'{}')

    @Logger.io
    async def get_capture(self, *, capture_id: str) -> Dict[str, Any]:
        return await self._send('GET', f'/v2/payments/captures/{capture_id}')

    def _auth_assertion(self, merchant_id: str) -> str:
        """Unsigned JWT letting the platform act for a connected merchant."""
        header = base64.b64encode(b'{"alg":"none"}').decode()
        claims = base64.b64encode(
            orjson.dumps({'iss': self.client_id, 'payer_id': merchant_id})
        ).decode()
        return f'{header}.{claims}.'

    @Logger.io
    async def refund_capture(
        self,
        *,
        capture_id: str,
        amount: Optional[Decimal],
        currency: str,
        custom_id: str,
        merchant_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        body: Dict[str, Any] = {'custom_id': custom_id}
        if amount is not None:
            body['amount'] = {'value': f'{amount:.2f}', 'currency_code': currency}

        # Same capture and scope retry as the same refund; PayPal caps the id at 108 characters
        scope_digest = hashlib.sha256(custom_id.encode()).hexdigest()[:16]
        headers = {'PayPal-Request-Id': f'refund-{capture_id}-{scope_digest}'}
        if merchant_id:
            headers['PayPal-Auth-Assertion'] = self._auth_assertion(merchant_id)

        return await self._send(
            'POST',
            f'/v2/payments/captures/{capture_id}/refund',
            content=orjson.dumps(body),
            headers=headers,
        )
