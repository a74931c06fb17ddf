from enum import StrEnum

import attrs


class OperatorRole(StrEnum):
    OPERATOR = 'operator'  # runs one merchant
    ADMIN = 'admin'  # runs every merchant


@attrs.define(frozen=True)
class Operator:
    subject: str
    merchant_id: str
    role: OperatorRole = OperatorRole.OPERATOR

    def can_operate(self, merchant_id: str) -> bool:
        return self.role == OperatorRole.ADMIN or self.merchant_id == merchant_id
