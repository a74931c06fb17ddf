from typing import Callable, Dict

from fastapi.testclient import TestClient
import pytest

from test.constants import LATER_TRIP_EPOCH, LATEST_TRIP_EPOCH, PRODUCT_ID, TRIP_EPOCH


AuthHeaders = Callable[..., Dict[str, str]]


class TestCapacityRoutes:
    def test_untouched_slot_reports_zero(self, client: TestClient) -> None:
        response = client.get(f'/api/capacity/{PRODUCT_ID}/{TRIP_EPOCH}')

        assert response.status_code == 200
        assert response.json() == {
            'product_id': PRODUCT_ID,
            'timestamp': TRIP_EPOCH,
            'trip_instant': '2023-11-14T22:13:20Z',
            'available': 0,
            'cancelled': False,
        }

    def test_override_requires_token(self, client: TestClient) -> None:
        response = client.put(
            '/api/capacity',
            json={'product_id': PRODUCT_ID, 'timestamp': TRIP_EPOCH, 'available': 10},
        )

        assert response.status_code == 401

    @pytest.mark.usefixtures('slot_stocked')
    def test_override_is_listed_in_range(
        self, client: TestClient, auth_headers: AuthHeaders
    ) -> None:
        cancelled = client.put(
            '/api/capacity',
            json={
                'product_id': PRODUCT_ID,
                'timestamp': LATER_TRIP_EPOCH,
                'available': 4,
                'cancelled': True,
            },
            headers=auth_headers(),
        )
        assert cancelled.status_code == 200

        response = client.get(
            '/api/capacity', params={'from_ts': TRIP_EPOCH, 'to_ts': LATEST_TRIP_EPOCH}
        )

        assert response.status_code == 200
        assert [
            (row['timestamp'], row['available'], row['cancelled']) for row in response.json()
        ] == [(TRIP_EPOCH, 10, False), (LATER_TRIP_EPOCH, 4, True)]

    def test_inverted_range_is_rejected(self, client: TestClient) -> None:
        response = client.get(
            '/api/capacity', params={'from_ts': LATER_TRIP_EPOCH, 'to_ts': TRIP_EPOCH}
        )

        assert response.status_code == 400
        assert response.json() == {'detail': 'from_ts must not be after to_ts'}

    def test_negative_product_is_rejected(
        self, client: TestClient, auth_headers: AuthHeaders
    ) -> None:
        response = client.put(
            '/api/capacity',
            json={'product_id': -1, 'timestamp': TRIP_EPOCH, 'available': 10},
            headers=auth_headers(),
        )

        assert response.status_code == 400
