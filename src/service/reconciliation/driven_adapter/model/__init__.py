"""
Database Models

Import all models here to ensure they are registered with SQLAlchemy
"""

from src.service.reconciliation.driven_adapter.model.capacity_entry_model import (
    CapacityEntryModel,
)
from src.service.reconciliation.driven_adapter.model.merchant_config_model import (
    MerchantConfigModel,
)
from src.service.reconciliation.driven_adapter.model.order_model import (
    CaptureModel,
    LineItemModel,
    OrderModel,
)
from src.service.reconciliation.driven_adapter.model.refund_model import RefundModel
from src.service.reconciliation.driven_adapter.model.transfer_request_model import (
    TransferRequestModel,
)
from src.service.reconciliation.driven_adapter.model.webhook_event_model import WebhookEventModel

__all__ = [
    'CapacityEntryModel',
    'CaptureModel',
    'LineItemModel',
    'MerchantConfigModel',
    'OrderModel',
    'RefundModel',
    'TransferRequestModel',
    'WebhookEventModel',
]
