from abc import ABC, abstractmethod
from typing import Optional

from src.service.reconciliation.domain.entity.webhook_event_entity import WebhookEvent


class IWebhookEventRepo(ABC):
    @abstractmethod
    async def save(self, *, event: WebhookEvent) -> None:
        """Insert the event, or update it on redelivery unless it was already processed"""
        pass

    @abstractmethod
    async def get(self, *, event_id: str) -> Optional[WebhookEvent]:
        pass
