"""
Test Configuration and Fixtures

This module provides:
- Environment setup (SQLite database, log directory, operator secret) before app imports
- In-memory SQLite engine, session and unit of work for integration tests
- Mocked PayPal / Stripe gateways and notification dispatcher
- Merchant configuration seeding

Architecture:
- Unit tests (test/**/unit/): no database, mocks only
- Integration tests (test/**/integration/): real repositories on in-memory SQLite
- API tests (test/**/api/): the FastAPI test app on a file-backed SQLite database
"""

# =============================================================================
# CRITICAL: Environment setup MUST happen before any other imports
# Settings are read once at import time (src.platform.config.core_setting)
# =============================================================================
import os
from pathlib import Path


def _early_setup_test_environment() -> None:
    """Set test environment variables before any module imports."""
    test_log_dir = Path(__file__).parent / 'test_log'
    test_log_dir.mkdir(exist_ok=True)
    os.environ['TEST_LOG_DIR'] = str(test_log_dir)

    # API tests run the whole app; read and write engines must see the same file
    worker_id = os.environ.get('PYTEST_XDIST_WORKER', 'master')
    db_path = test_log_dir / f'reconciliation_test_{worker_id}.db'
    os.environ['DATABASE_URL'] = f'sqlite+aiosqlite:///{db_path}'

    os.environ['SECRET_KEY'] = 'test_operator_secret_key'
    os.environ['LEDGER_DEFAULT_AVAILABLE'] = '0'
    os.environ['LEDGER_ENFORCE_FLOOR'] = 'false'
    os.environ['STRIPE_SPLIT_PER_TICKET_CENTS'] = '500'
    os.environ.pop('OTEL_EXPORTER_OTLP_ENDPOINT', None)


_early_setup_test_environment()

from collections.abc import AsyncGenerator  # noqa: E402
from typing import Awaitable, Callable  # noqa: E402
from unittest.mock import AsyncMock, MagicMock  # noqa: E402

import pytest  # noqa: E402
from sqlalchemy.ext.asyncio import (  # noqa: E402
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool  # noqa: E402

from src.platform.database.orm_db_setting import Base  # noqa: E402
from src.platform.database.unit_of_work import SqlAlchemyUnitOfWork  # noqa: E402
from src.service.reconciliation.app.interface.i_notification_dispatcher import (  # noqa: E402
    INotificationDispatcher,
)
from src.service.reconciliation.app.interface.i_paypal_gateway import IPaypalGateway  # noqa: E402
from src.service.reconciliation.app.interface.i_stripe_gateway import IStripeGateway  # noqa: E402
from src.service.reconciliation.domain.entity.merchant_config_entity import (  # noqa: E402
    MerchantConfig,
)
from src.service.reconciliation.domain.enum.payment_type import PaymentType  # noqa: E402
from src.service.reconciliation.driven_adapter.provider.provider_registry import (  # noqa: E402
    ProviderRegistry,
)
from test.constants import (  # noqa: E402
    PAYPAL_MERCHANT_ID,
    PAYPAL_SANDBOX_ID,
    STRIPE_CONNECTED_ACCOUNT,
    STRIPE_FEE_ACCOUNT,
    STRIPE_MERCHANT_ID,
    STRIPE_SECONDARY_ACCOUNT,
)


# =============================================================================
# Database
# =============================================================================
@pytest.fixture
async def db_engine() -> AsyncGenerator[AsyncEngine, None]:
    """Fresh in-memory database per test (StaticPool keeps the single connection alive)"""
    import src.service.reconciliation.driven_adapter.model  # noqa: F401

    engine = create_async_engine(
        'sqlite+aiosqlite://',
        poolclass=StaticPool,
        connect_args={'check_same_thread': False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
async def db_session(db_engine: AsyncEngine) -> AsyncGenerator[AsyncSession, None]:
    session_maker = async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)
    async with session_maker() as session:
        yield session


@pytest.fixture
def uow(db_session: AsyncSession) -> SqlAlchemyUnitOfWork:
    return SqlAlchemyUnitOfWork(db_session, default_available=0)


# =============================================================================
# Remote ports
# =============================================================================
@pytest.fixture
def paypal_gateway() -> AsyncMock:
    gateway = AsyncMock(spec=IPaypalGateway)
    gateway.verify_webhook_signature.return_value = True
    return gateway


@pytest.fixture
def stripe_gateway() -> AsyncMock:
    gateway = AsyncMock(spec=IStripeGateway)
    # construct_event is synchronous on the real SDK
    gateway.construct_event = MagicMock(return_value={})
    gateway.list_transfers.return_value = []
    return gateway


@pytest.fixture
def provider_registry(paypal_gateway: AsyncMock, stripe_gateway: AsyncMock) -> ProviderRegistry:
    return ProviderRegistry(
        paypal_gateway=paypal_gateway,
        stripe_gateway=stripe_gateway,
        stripe_split_per_ticket_cents=500,
    )


@pytest.fixture
def notification_dispatcher() -> AsyncMock:
    return AsyncMock(spec=INotificationDispatcher)


# =============================================================================
# Merchants
# =============================================================================
@pytest.fixture
def paypal_merchant() -> MerchantConfig:
    return MerchantConfig(
        id=PAYPAL_MERCHANT_ID,
        payment_type=PaymentType.PAYPAL,
        pass_title='Harbor Cruises',
        email_from='tickets@harbor.example.com',
        email_name='Harbor Cruises',
        sandbox_ids=[PAYPAL_SANDBOX_ID],
    )


@pytest.fixture
def stripe_merchant() -> MerchantConfig:
    return MerchantConfig(
        id=STRIPE_MERCHANT_ID,
        payment_type=PaymentType.STRIPE,
        pass_title='Lake Tours',
        stripe_account=STRIPE_CONNECTED_ACCOUNT,
        stripe_secondary_account=STRIPE_SECONDARY_ACCOUNT,
        stripe_fee_account=STRIPE_FEE_ACCOUNT,
    )


@pytest.fixture
def seed_merchant(
    uow: SqlAlchemyUnitOfWork,
) -> Callable[[MerchantConfig], Awaitable[MerchantConfig]]:
    async def _seed(config: MerchantConfig) -> MerchantConfig:
        async with uow:
            await uow.merchant_config_repo.save(config=config)
            await uow.commit()
        return config

    return _seed
