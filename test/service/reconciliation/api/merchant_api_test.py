"""
Merchant admin routes

Operator tokens are scoped to one merchant (admins to all); every route runs
the real use cases against the test database.
"""

from typing import Callable, Dict
from unittest.mock import AsyncMock

from fastapi.testclient import TestClient
import pytest

from src.service.reconciliation.domain.entity.operator_entity import OperatorRole
from test.constants import (
    LATER_TRIP_EPOCH,
    ORDER_ID,
    OTHER_MERCHANT_ID,
    PAYPAL_MERCHANT_ID,
    PAYPAL_SANDBOX_ID,
    PRODUCT_ID,
    SKU_A,
    SKU_B,
    TRIP_EPOCH,
)
from test.service.reconciliation.payloads import paypal_checkout_order


AuthHeaders = Callable[..., Dict[str, str]]


def _manual_entry_body(**overrides: object) -> dict:
    body = {
        'product_id': PRODUCT_ID,
        'timestamp': TRIP_EPOCH,
        'ticket_type': 'AM',
        'quantity': 2,
        'entry_type': 'phone',
        'name': 'Ada Lovelace',
        'email': 'ada@example.com',
        'description': 'Sunset cruise',
    }
    body.update(overrides)
    return body


class TestOperatorScope:
    def test_missing_token_is_unauthorized(self, client: TestClient) -> None:
        response = client.get(f'/api/merchant/{PAYPAL_MERCHANT_ID}/config')

        assert response.status_code == 401
        assert response.json() == {'detail': 'Not authenticated'}

    def test_garbage_token_is_unauthorized(self, client: TestClient) -> None:
        response = client.get(
            f'/api/merchant/{PAYPAL_MERCHANT_ID}/config',
            headers={'Authorization': 'Bearer not-a-jwt'},
        )

        assert response.status_code == 401

    def test_operator_of_other_merchant_is_forbidden(
        self, client: TestClient, auth_headers: AuthHeaders
    ) -> None:
        response = client.get(
            f'/api/merchant/{PAYPAL_MERCHANT_ID}/config', headers=auth_headers(OTHER_MERCHANT_ID)
        )

        assert response.status_code == 403
        assert response.json() == {'detail': f'Not an operator of merchant {PAYPAL_MERCHANT_ID}'}

    @pytest.mark.usefixtures('paypal_merchant_configured')
    def test_admin_operates_every_merchant(
        self, client: TestClient, auth_headers: AuthHeaders
    ) -> None:
        response = client.get(
            f'/api/merchant/{PAYPAL_MERCHANT_ID}/config',
            headers=auth_headers(OTHER_MERCHANT_ID, OperatorRole.ADMIN),
        )

        assert response.status_code == 200


class TestMerchantConfigRoutes:
    def test_unknown_merchant_is_not_found(
        self, client: TestClient, auth_headers: AuthHeaders
    ) -> None:
        response = client.get(f'/api/merchant/{PAYPAL_MERCHANT_ID}/config', headers=auth_headers())

        assert response.status_code == 404
        assert response.json() == {'detail': f'Merchant {PAYPAL_MERCHANT_ID} not found'}

    @pytest.mark.usefixtures('paypal_merchant_configured')
    def test_saved_config_is_returned(self, client: TestClient, auth_headers: AuthHeaders) -> None:
        response = client.get(f'/api/merchant/{PAYPAL_MERCHANT_ID}/config', headers=auth_headers())

        assert response.status_code == 200
        body = response.json()
        assert body['id'] == PAYPAL_MERCHANT_ID
        assert body['payment_type'] == 'paypal'
        assert body['pass_title'] == 'Harbor Cruises'
        assert body['sandbox_ids'] == [PAYPAL_SANDBOX_ID]

    def test_unknown_payment_type_is_rejected(
        self, client: TestClient, auth_headers: AuthHeaders
    ) -> None:
        response = client.put(
            f'/api/merchant/{PAYPAL_MERCHANT_ID}/config',
            json={'payment_type': 'square'},
            headers=auth_headers(),
        )

        assert response.status_code == 400


@pytest.mark.usefixtures('paypal_merchant_configured', 'slot_stocked')
class TestManualEntryAndReports:
    def test_manual_entry_shows_up_in_reports(
        self, client: TestClient, auth_headers: AuthHeaders
    ) -> None:
        created = client.post(
            f'/api/merchant/{PAYPAL_MERCHANT_ID}/manual-entry',
            json=_manual_entry_body(),
            headers=auth_headers(),
        )

        assert created.status_code == 201
        order = created.json()
        assert order['channel'] == 'manual:phone'
        assert [item['sku'] for item in order['line_items']] == [SKU_A]

        sold = client.get(
            f'/api/merchant/{PAYPAL_MERCHANT_ID}/sold',
            params={'from_ts': TRIP_EPOCH, 'to_ts': LATER_TRIP_EPOCH},
            headers=auth_headers(),
        )
        assert sold.json() == [{'product_id': PRODUCT_ID, 'timestamp': TRIP_EPOCH, 'quantity': 2}]

        at_slot = client.get(
            f'/api/merchant/{PAYPAL_MERCHANT_ID}/orders/{TRIP_EPOCH}', headers=auth_headers()
        )
        assert [(row['order_id'], row['channel']) for row in at_slot.json()] == [
            (order['id'], 'manual:phone')
        ]

        passes = client.get(
            f'/api/merchant/{PAYPAL_MERCHANT_ID}/passes/{order["id"]}', headers=auth_headers()
        )
        assert passes.status_code == 200
        assert [item['description'] for item in passes.json()['items']] == ['Sunset cruise']

        capacity = client.get(f'/api/capacity/{PRODUCT_ID}/{TRIP_EPOCH}')
        assert capacity.json()['available'] == 8

    def test_non_positive_quantity_is_rejected(
        self, client: TestClient, auth_headers: AuthHeaders
    ) -> None:
        response = client.post(
            f'/api/merchant/{PAYPAL_MERCHANT_ID}/manual-entry',
            json=_manual_entry_body(quantity=0),
            headers=auth_headers(),
        )

        assert response.status_code == 400

    def test_inverted_report_range_is_rejected(
        self, client: TestClient, auth_headers: AuthHeaders
    ) -> None:
        response = client.get(
            f'/api/merchant/{PAYPAL_MERCHANT_ID}/sold',
            params={'from_ts': LATER_TRIP_EPOCH, 'to_ts': TRIP_EPOCH},
            headers=auth_headers(),
        )

        assert response.status_code == 400

    def test_unknown_pass_order_is_not_found(
        self, client: TestClient, auth_headers: AuthHeaders
    ) -> None:
        response = client.get(
            f'/api/merchant/{PAYPAL_MERCHANT_ID}/passes/NOPE', headers=auth_headers()
        )

        assert response.status_code == 404


class TestOperatorPaymentRoutes:
    @pytest.fixture(autouse=True)
    def captured_order(
        self,
        paypal_merchant_configured: None,
        slot_stocked: None,
        client: TestClient,
        auth_headers: AuthHeaders,
        paypal_gateway: AsyncMock,
    ) -> None:
        paypal_gateway.get_checkout_order.return_value = paypal_checkout_order()
        response = client.post(
            f'/api/merchant/{PAYPAL_MERCHANT_ID}/capture/{ORDER_ID}', headers=auth_headers()
        )
        assert response.status_code == 200
        assert response.json()['status'] == 'captured'

    def test_transfer_moves_seats(self, client: TestClient, auth_headers: AuthHeaders) -> None:
        response = client.post(
            f'/api/merchant/{PAYPAL_MERCHANT_ID}/transfer',
            json={
                'transfers': [
                    {'line_item_id': f'{ORDER_ID}-0-0', 'new_sku': SKU_B, 'old_sku': SKU_A}
                ]
            },
            headers=auth_headers(),
        )

        assert response.status_code == 200
        assert response.json() == [
            {'line_item_id': f'{ORDER_ID}-0-0', 'old_sku': SKU_A, 'new_sku': SKU_B, 'quantity': 2}
        ]
        origin = client.get(f'/api/capacity/{PRODUCT_ID}/{TRIP_EPOCH}').json()
        destination = client.get(f'/api/capacity/{PRODUCT_ID}/{LATER_TRIP_EPOCH}').json()
        assert (origin['available'], destination['available']) == (10, -2)

    def test_stale_transfer_is_rejected(
        self, client: TestClient, auth_headers: AuthHeaders
    ) -> None:
        response = client.post(
            f'/api/merchant/{PAYPAL_MERCHANT_ID}/transfer',
            json={
                'transfers': [
                    {'line_item_id': f'{ORDER_ID}-0-0', 'new_sku': SKU_A, 'old_sku': SKU_B}
                ]
            },
            headers=auth_headers(),
        )

        assert response.status_code == 400

    def test_refund_releases_seats(
        self, client: TestClient, auth_headers: AuthHeaders, paypal_gateway: AsyncMock
    ) -> None:
        paypal_gateway.refund_capture.return_value = {'id': 'REF1', 'status': 'COMPLETED'}

        response = client.post(
            f'/api/merchant/{PAYPAL_MERCHANT_ID}/refund',
            json={'line_item_ids': [f'{ORDER_ID}-0-0']},
            headers=auth_headers(),
        )

        assert response.status_code == 200
        assert response.json() == {
            'refund_ids': ['REF1'],
            'refunded_line_item_ids': [f'{ORDER_ID}-0-0'],
            'status': 'completed',
        }
        capacity = client.get(f'/api/capacity/{PRODUCT_ID}/{TRIP_EPOCH}')
        assert capacity.json()['available'] == 10

    def test_empty_refund_is_rejected(self, client: TestClient, auth_headers: AuthHeaders) -> None:
        response = client.post(
            f'/api/merchant/{PAYPAL_MERCHANT_ID}/refund',
            json={'line_item_ids': []},
            headers=auth_headers(),
        )

        assert response.status_code == 400
