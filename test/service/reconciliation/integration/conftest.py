"""
Integration test fixtures

Real repositories on the per-test SQLite database; only the payment gateways
and the notification dispatcher are mocked.
"""

from unittest.mock import AsyncMock

from sqlalchemy.ext.asyncio import AsyncSession
import pytest

from src.platform.database.unit_of_work import SqlAlchemyUnitOfWork
from src.service.reconciliation.app.command.ingest_webhook_use_case import IngestWebhookUseCase
from src.service.reconciliation.driven_adapter.provider.provider_registry import ProviderRegistry
from test.service.reconciliation.ledger_reader import LedgerReader


@pytest.fixture
def ledger(uow: SqlAlchemyUnitOfWork, db_session: AsyncSession) -> LedgerReader:
    return LedgerReader(uow=uow, session=db_session)


@pytest.fixture
def ingest(
    uow: SqlAlchemyUnitOfWork,
    provider_registry: ProviderRegistry,
    notification_dispatcher: AsyncMock,
) -> IngestWebhookUseCase:
    return IngestWebhookUseCase(
        uow=uow,
        provider_registry=provider_registry,
        notification_dispatcher=notification_dispatcher,
    )
