"""
Unit of Work - one database session shared by every repository of a request

Architecture:
- UoW owns the transaction boundary (commit / rollback)
- Repositories get the shared session from the UoW
- Use cases coordinate several repositories inside one `async with uow:` block;
  leaving the block without commit rolls back, so a failed transfer or webhook
  leaves no partial ledger writes behind
"""

from __future__ import annotations

import abc
from typing import TYPE_CHECKING, Any

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from src.platform.database.orm_db_setting import get_async_read_session, get_async_session


if TYPE_CHECKING:
    from src.service.reconciliation.app.interface.i_capacity_ledger_repo import (
        ICapacityLedgerRepo,
    )
    from src.service.reconciliation.app.interface.i_merchant_config_repo import (
        IMerchantConfigRepo,
    )
    from src.service.reconciliation.app.interface.i_order_command_repo import IOrderCommandRepo
    from src.service.reconciliation.app.interface.i_order_query_repo import IOrderQueryRepo
    from src.service.reconciliation.app.interface.i_transfer_request_repo import (
        ITransferRequestRepo,
    )
    from src.service.reconciliation.app.interface.i_webhook_event_repo import IWebhookEventRepo


class AbstractUnitOfWork(abc.ABC):
    """
    Usage:
        async with uow:
            await uow.capacity_ledger_repo.decrement(...)
            await uow.order_command_repo.insert_order_if_absent(...)
            await uow.commit()
    """

    capacity_ledger_repo: ICapacityLedgerRepo
    order_command_repo: IOrderCommandRepo
    order_query_repo: IOrderQueryRepo
    transfer_request_repo: ITransferRequestRepo
    webhook_event_repo: IWebhookEventRepo
    merchant_config_repo: IMerchantConfigRepo

    async def __aenter__(self) -> AbstractUnitOfWork:
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.rollback()

    async def commit(self) -> None:
        await self._commit()

    @abc.abstractmethod
    async def _commit(self) -> None:
        raise NotImplementedError

    @abc.abstractmethod
    async def rollback(self) -> None:
        raise NotImplementedError


class SqlAlchemyUnitOfWork(AbstractUnitOfWork):
    def __init__(self, session: AsyncSession, *, default_available: int = 0) -> None:
        self.session = session
        self.default_available = default_available

    async def __aenter__(self) -> AbstractUnitOfWork:
        from src.service.reconciliation.driven_adapter.repo.capacity_ledger_repo_impl import (
            CapacityLedgerRepoImpl,
        )
        from src.service.reconciliation.driven_adapter.repo.merchant_config_repo_impl import (
            MerchantConfigRepoImpl,
        )
        from src.service.reconciliation.driven_adapter.repo.order_command_repo_impl import (
            OrderCommandRepoImpl,
        )
        from src.service.reconciliation.driven_adapter.repo.order_query_repo_impl import (
            OrderQueryRepoImpl,
        )
        from src.service.reconciliation.driven_adapter.repo.transfer_request_repo_impl import (
            TransferRequestRepoImpl,
        )
        from src.service.reconciliation.driven_adapter.repo.webhook_event_repo_impl import (
            WebhookEventRepoImpl,
        )

        self.capacity_ledger_repo = CapacityLedgerRepoImpl(
            session=self.session, default_available=self.default_available
        )
        self.order_command_repo = OrderCommandRepoImpl(session=self.session)
        self.order_query_repo = OrderQueryRepoImpl(session=self.session)
        self.transfer_request_repo = TransferRequestRepoImpl(session=self.session)
        self.webhook_event_repo = WebhookEventRepoImpl(session=self.session)
        self.merchant_config_repo = MerchantConfigRepoImpl(session=self.session)

        return await super().__aenter__()

    async def _commit(self) -> None:
        await self.session.commit()

    async def rollback(self) -> None:
        await self.session.rollback()


def get_unit_of_work(
    session: AsyncSession = Depends(get_async_session),
) -> AbstractUnitOfWork:
    """
    FastAPI dependency for Unit of Work

    Usage:
        async def ingest(uow: AbstractUnitOfWork = Depends(get_unit_of_work)):
            async with uow:
                ...
                await uow.commit()
    """
    from src.platform.config.core_setting import settings

    return SqlAlchemyUnitOfWork(session, default_available=settings.LEDGER_DEFAULT_AVAILABLE)


def get_read_unit_of_work(
    session: AsyncSession = Depends(get_async_read_session),
) -> AbstractUnitOfWork:
    """Unit of Work on the read session, for reports that never commit"""
    from src.platform.config.core_setting import settings

    return SqlAlchemyUnitOfWork(session, default_available=settings.LEDGER_DEFAULT_AVAILABLE)
