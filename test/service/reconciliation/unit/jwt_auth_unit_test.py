from datetime import datetime, timedelta, timezone

from fastapi import HTTPException
import jwt
import pytest

from src.platform.config.core_setting import settings
from src.service.reconciliation.domain.entity.operator_entity import Operator, OperatorRole
from src.service.reconciliation.driving_adapter.http_controller.auth.jwt_auth import JwtAuth
from test.constants import OTHER_MERCHANT_ID, PAYPAL_MERCHANT_ID


@pytest.fixture
def jwt_auth() -> JwtAuth:
    return JwtAuth()


def _encode(payload: dict, *, secret: str | None = None) -> str:
    return jwt.encode(
        payload,
        secret or settings.SECRET_KEY.get_secret_value(),
        algorithm=settings.ALGORITHM,
    )


@pytest.mark.unit
class TestJwtAuth:
    def test_token_round_trips_operator(self, jwt_auth: JwtAuth) -> None:
        operator = Operator(subject='ops@harbor', merchant_id=PAYPAL_MERCHANT_ID)

        token = jwt_auth.create_jwt_token(operator)

        assert jwt_auth.get_operator_from_jwt(token) == operator

    def test_missing_token_is_unauthenticated(self, jwt_auth: JwtAuth) -> None:
        with pytest.raises(HTTPException) as exc_info:
            jwt_auth.get_operator_from_jwt(None)

        assert exc_info.value.status_code == 401
        assert exc_info.value.detail == 'Not authenticated'

    def test_token_signed_with_other_secret_is_rejected(self, jwt_auth: JwtAuth) -> None:
        token = _encode(
            {'sub': 'intruder', 'merchant_id': PAYPAL_MERCHANT_ID, 'role': 'admin'},
            secret='not-the-secret',
        )

        with pytest.raises(HTTPException) as exc_info:
            jwt_auth.get_operator_from_jwt(token)

        assert exc_info.value.status_code == 401

    def test_expired_token_is_rejected(self, jwt_auth: JwtAuth) -> None:
        token = _encode(
            {
                'sub': 'ops@harbor',
                'merchant_id': PAYPAL_MERCHANT_ID,
                'role': 'operator',
                'exp': datetime.now(timezone.utc) - timedelta(minutes=1),
            }
        )

        with pytest.raises(HTTPException) as exc_info:
            jwt_auth.get_operator_from_jwt(token)

        assert exc_info.value.status_code == 401

    @pytest.mark.parametrize(
        'claims',
        [
            {'merchant_id': PAYPAL_MERCHANT_ID, 'role': 'operator'},
            {'sub': 'ops@harbor', 'role': 'operator'},
            {'sub': 'ops@harbor', 'merchant_id': PAYPAL_MERCHANT_ID, 'role': 'buyer'},
        ],
    )
    def test_incomplete_claims_are_rejected(self, jwt_auth: JwtAuth, claims: dict) -> None:
        with pytest.raises(HTTPException) as exc_info:
            jwt_auth.get_operator_from_jwt(_encode(claims))

        assert exc_info.value.status_code == 401


@pytest.mark.unit
class TestOperatorScope:
    def test_operator_runs_only_own_merchant(self) -> None:
        operator = Operator(subject='ops@harbor', merchant_id=PAYPAL_MERCHANT_ID)

        assert operator.can_operate(PAYPAL_MERCHANT_ID)
        assert not operator.can_operate(OTHER_MERCHANT_ID)

    def test_admin_runs_every_merchant(self) -> None:
        admin = Operator(subject='root', merchant_id=PAYPAL_MERCHANT_ID, role=OperatorRole.ADMIN)

        assert admin.can_operate(OTHER_MERCHANT_ID)
