"""
Operator Authentication

Operators call the admin and capacity-override routes with a bearer token
signed with SECRET_KEY. The merchant claim scopes which merchant routes the
token opens; nothing is looked up in the database.
"""

from datetime import datetime, timedelta, timezone
from typing import Dict, Optional

from fastapi import HTTPException, status
import jwt

from src.platform.config.core_setting import settings
from src.service.reconciliation.domain.entity.operator_entity import Operator, OperatorRole


class JwtAuth:
    def __init__(self) -> None:
        self.secret = settings.SECRET_KEY.get_secret_value()
        self.algorithm = settings.ALGORITHM
        self.token_expire_days = settings.OPERATOR_TOKEN_EXPIRE_DAYS

    def create_jwt_token(self, operator: Operator) -> str:
        payload = {
            'sub': operator.subject,
            'exp': datetime.now(timezone.utc) + timedelta(days=self.token_expire_days),
            'iat': datetime.now(timezone.utc),
            'merchant_id': operator.merchant_id,
            'role': operator.role.value,
        }

        return jwt.encode(payload, self.secret, algorithm=self.algorithm)

    def decode_jwt_token(self, token: str) -> Dict:
        try:
            return jwt.decode(token, self.secret, algorithms=[self.algorithm])
        except jwt.PyJWTError:
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail='Invalid token')

    def get_operator_from_jwt(self, token: Optional[str]) -> Operator:
        if not token:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED, detail='Not authenticated'
            )

        payload = self.decode_jwt_token(token)

        subject = payload.get('sub')
        merchant_id = payload.get('merchant_id')
        role = payload.get('role')
        if not subject or not merchant_id or role not in set(OperatorRole):
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail='Invalid token')

        return Operator(subject=subject, merchant_id=merchant_id, role=OperatorRole(role))
