from typing import Optional

from dependency_injector.wiring import Provide, inject
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from opentelemetry import trace

from src.platform.config.di import Container
from src.platform.exception.exceptions import ForbiddenError
from src.service.reconciliation.domain.entity.operator_entity import Operator
from src.service.reconciliation.driving_adapter.http_controller.auth.jwt_auth import JwtAuth


bearer_scheme = HTTPBearer(auto_error=False)


@inject
async def get_current_operator(
    jwt_auth: JwtAuth = Depends(Provide[Container.jwt_auth]),
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> Operator:
    return jwt_auth.get_operator_from_jwt(credentials.credentials if credentials else None)


async def require_merchant_operator(
    merchant_id: str,
    operator: Operator = Depends(get_current_operator),
) -> Operator:
    """Path `merchant_id` must be a merchant the token's holder operates."""
    tracer = trace.get_tracer(__name__)
    with tracer.start_as_current_span(
        'auth.require_merchant_operator',
        attributes={'operator.subject': operator.subject, 'merchant.id': merchant_id},
    ):
        if not operator.can_operate(merchant_id):
            raise ForbiddenError(f'Not an operator of merchant {merchant_id}')
        return operator
