from typing import Optional

from pydantic import BaseModel


class WebhookAckResponse(BaseModel):
    model_config = {
        'json_schema_extra': {
            'example': {
                'event_id': 'WH-2WR32451HC0233532-67976317FL4543714',
                'outcome': 'applied',
                'order_id': '5O190127TN364715T',
            }
        },
    }

    event_id: str
    outcome: str  # applied / already_processed / ignored
    order_id: Optional[str] = None
