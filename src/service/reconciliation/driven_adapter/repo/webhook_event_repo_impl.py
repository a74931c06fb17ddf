from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.platform.database.orm_db_setting import dialect_insert
from src.platform.logging.loguru_io import Logger
from src.service.reconciliation.app.interface.i_webhook_event_repo import IWebhookEventRepo
from src.service.reconciliation.domain.entity.webhook_event_entity import WebhookEvent
from src.service.reconciliation.domain.enum.payment_type import PaymentType
from src.service.reconciliation.domain.enum.webhook_event_status import WebhookEventStatus
from src.service.reconciliation.driven_adapter.model.webhook_event_model import WebhookEventModel


class WebhookEventRepoImpl(IWebhookEventRepo):
    def __init__(self, *, session: AsyncSession) -> None:
        self.session = session

    @Logger.io
    async def save(self, *, event: WebhookEvent) -> None:
        """Insert or update the audit row; a `processed` row is final and never rewritten."""
        values = {
            'id': event.id,
            'provider': str(event.provider),
            'event_type': event.event_type,
            'resource_type': event.resource_type,
            'summary': event.summary,
            'status': str(event.status),
            'raw_body': event.raw_body,
        }
        await self.session.execute(
            dialect_insert(self.session, WebhookEventModel)
            .values(**values)
            .on_conflict_do_update(
                index_elements=['id'],
                set_={key: value for key, value in values.items() if key != 'id'},
                where=WebhookEventModel.status != WebhookEventStatus.PROCESSED.value,
            )
        )

    @Logger.io
    async def get(self, *, event_id: str) -> Optional[WebhookEvent]:
        result = await self.session.execute(
            select(WebhookEventModel)
            .where(WebhookEventModel.id == event_id)
            .execution_options(populate_existing=True)
        )
        model = result.scalar_one_or_none()
        if model is None:
            return None
        return WebhookEvent(
            id=model.id,
            provider=PaymentType(model.provider),
            raw_body=model.raw_body,
            event_type=model.event_type,
            resource_type=model.resource_type,
            summary=model.summary,
            status=WebhookEventStatus(model.status),
            created_at=model.created_at,
        )
