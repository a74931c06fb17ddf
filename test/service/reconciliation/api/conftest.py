"""
API test fixtures

The test app runs on the file-backed SQLite database with the gateway and
notification singletons of the DI container replaced by mocks.
"""

from collections.abc import Generator
from typing import Callable, Dict
from unittest.mock import AsyncMock

from dependency_injector import providers
from fastapi.testclient import TestClient
import pytest

from src.platform.config.di import container
from src.service.reconciliation.domain.entity.operator_entity import Operator, OperatorRole
from src.service.reconciliation.driven_adapter.provider.provider_registry import ProviderRegistry
from src.service.reconciliation.driving_adapter.http_controller.auth.jwt_auth import JwtAuth
from test.constants import (
    PAYPAL_MERCHANT_ID,
    PAYPAL_SANDBOX_ID,
    PRODUCT_ID,
    STRIPE_CONNECTED_ACCOUNT,
    STRIPE_MERCHANT_ID,
    TRIP_EPOCH,
)


AuthHeaders = Callable[..., Dict[str, str]]


@pytest.fixture
def client(
    paypal_gateway: AsyncMock,
    stripe_gateway: AsyncMock,
    notification_dispatcher: AsyncMock,
) -> Generator[TestClient, None, None]:
    from test.test_main import app

    container.provider_registry.override(
        providers.Object(
            ProviderRegistry(
                paypal_gateway=paypal_gateway,
                stripe_gateway=stripe_gateway,
                stripe_split_per_ticket_cents=500,
            )
        )
    )
    container.notification_dispatcher.override(providers.Object(notification_dispatcher))
    try:
        with TestClient(app, raise_server_exceptions=False) as test_client:
            yield test_client
    finally:
        container.provider_registry.reset_override()
        container.notification_dispatcher.reset_override()


@pytest.fixture
def auth_headers() -> AuthHeaders:
    def _headers(
        merchant_id: str = PAYPAL_MERCHANT_ID, role: OperatorRole = OperatorRole.OPERATOR
    ) -> Dict[str, str]:
        token = JwtAuth().create_jwt_token(
            Operator(subject=f'ops@{merchant_id.lower()}', merchant_id=merchant_id, role=role)
        )
        return {'Authorization': f'Bearer {token}'}

    return _headers


@pytest.fixture
def paypal_merchant_configured(client: TestClient, auth_headers: AuthHeaders) -> None:
    response = client.put(
        f'/api/merchant/{PAYPAL_MERCHANT_ID}/config',
        json={
            'payment_type': 'paypal',
            'pass_title': 'Harbor Cruises',
            'email_from': 'tickets@harbor.example.com',
            'email_name': 'Harbor Cruises',
            'sandbox_ids': [PAYPAL_SANDBOX_ID],
        },
        headers=auth_headers(),
    )
    assert response.status_code == 200


@pytest.fixture
def stripe_merchant_configured(client: TestClient, auth_headers: AuthHeaders) -> None:
    response = client.put(
        f'/api/merchant/{STRIPE_MERCHANT_ID}/config',
        json={
            'payment_type': 'stripe',
            'pass_title': 'Lake Tours',
            'stripe_account': STRIPE_CONNECTED_ACCOUNT,
        },
        headers=auth_headers(STRIPE_MERCHANT_ID),
    )
    assert response.status_code == 200


@pytest.fixture
def slot_stocked(client: TestClient, auth_headers: AuthHeaders) -> None:
    """Slot 12 @ TRIP_EPOCH starts with 10 seats."""
    response = client.put(
        '/api/capacity',
        json={'product_id': PRODUCT_ID, 'timestamp': TRIP_EPOCH, 'available': 10},
        headers=auth_headers(),
    )
    assert response.status_code == 200
