from enum import StrEnum


class OrderStatus(StrEnum):
    CREATED = 'created'
    CAPTURED = 'captured'
    REFUNDED = 'refunded'  # terminal

    @property
    def rank(self) -> int:
        return _RANK[self]


_RANK = {OrderStatus.CREATED: 0, OrderStatus.CAPTURED: 1, OrderStatus.REFUNDED: 2}


class LineItemStatus(StrEnum):
    ACTIVE = 'active'
    REFUNDED = 'refunded'


class CaptureStatus(StrEnum):
    PENDING = 'pending'
    COMPLETED = 'completed'
    REFUNDED = 'refunded'
