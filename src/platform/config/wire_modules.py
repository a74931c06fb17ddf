"""
Wire Modules Configuration

Defines the modules that need dependency injection wiring.
Shared between production and test environments.
"""

from types import ModuleType

from src.service.reconciliation.app.command import (
    capture_order_use_case,
    ingest_webhook_use_case,
    record_manual_entry_use_case,
    refund_tickets_use_case,
    transfer_tickets_use_case,
)
from src.service.reconciliation.app.query import merchant_report_use_case
from src.service.reconciliation.driving_adapter.http_controller.auth import operator_auth


WIRE_MODULES: list[ModuleType] = [
    ingest_webhook_use_case,
    refund_tickets_use_case,
    transfer_tickets_use_case,
    record_manual_entry_use_case,
    capture_order_use_case,
    merchant_report_use_case,
    operator_auth,
]
