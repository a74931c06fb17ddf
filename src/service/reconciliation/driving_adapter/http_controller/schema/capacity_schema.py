from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class CapacityResponse(BaseModel):
    model_config = {
        'json_schema_extra': {
            'example': {
                'product_id': 12,
                'timestamp': 1700000000,
                'trip_instant': '2023-11-14T22:13:20Z',
                'available': 8,
                'cancelled': False,
            }
        },
    }

    product_id: int
    timestamp: int
    trip_instant: datetime
    available: int
    cancelled: bool


class CapacityOverrideRequest(BaseModel):
    product_id: int = Field(ge=0)
    timestamp: int = Field(ge=0)
    available: Optional[int] = None
    cancelled: bool = False

    model_config = {
        'json_schema_extra': {
            'example': {'product_id': 12, 'timestamp': 1700000000, 'available': 10}
        },
    }
