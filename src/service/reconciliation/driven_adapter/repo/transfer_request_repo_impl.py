from typing import Dict, List, Optional

from sqlalchemy import func, insert, select
from sqlalchemy.ext.asyncio import AsyncSession

from src.platform.logging.loguru_io import Logger
from src.service.reconciliation.app.interface.i_transfer_request_repo import ITransferRequestRepo
from src.service.reconciliation.domain.entity.transfer_request_entity import TransferRequest
from src.service.reconciliation.driven_adapter.model.transfer_request_model import (
    TransferRequestModel,
)


class TransferRequestRepoImpl(ITransferRequestRepo):
    def __init__(self, *, session: AsyncSession) -> None:
        self.session = session

    @staticmethod
    def _to_entity(model: TransferRequestModel) -> TransferRequest:
        return TransferRequest(
            line_item_id=model.line_item_id,
            new_sku=model.new_sku,
            new_name=model.new_name,
            old_sku=model.old_sku,
            id=model.id,
            created_at=model.created_at,
        )

    @Logger.io
    async def append(self, *, transfer_request: TransferRequest) -> TransferRequest:
        result = await self.session.execute(
            insert(TransferRequestModel)
            .values(
                line_item_id=transfer_request.line_item_id,
                old_sku=transfer_request.old_sku,
                new_sku=transfer_request.new_sku,
                new_name=transfer_request.new_name,
            )
            .returning(TransferRequestModel.id, TransferRequestModel.created_at)
        )
        row = result.one()
        return TransferRequest(
            line_item_id=transfer_request.line_item_id,
            new_sku=transfer_request.new_sku,
            new_name=transfer_request.new_name,
            old_sku=transfer_request.old_sku,
            id=row.id,
            created_at=row.created_at,
        )

    @Logger.io
    async def get_effective(self, *, line_item_id: str) -> Optional[TransferRequest]:
        result = await self.session.execute(
            select(TransferRequestModel)
            .where(TransferRequestModel.line_item_id == line_item_id)
            .order_by(TransferRequestModel.id.desc())
            .limit(1)
        )
        model = result.scalar_one_or_none()
        return self._to_entity(model) if model else None

    @Logger.io
    async def get_effective_many(self, *, line_item_ids: List[str]) -> Dict[str, TransferRequest]:
        if not line_item_ids:
            return {}
        latest = (
            select(func.max(TransferRequestModel.id))
            .where(TransferRequestModel.line_item_id.in_(line_item_ids))
            .group_by(TransferRequestModel.line_item_id)
        )
        result = await self.session.execute(
            select(TransferRequestModel).where(TransferRequestModel.id.in_(latest))
        )
        return {model.line_item_id: self._to_entity(model) for model in result.scalars().all()}
