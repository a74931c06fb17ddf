from datetime import datetime

import attrs


@attrs.define(frozen=True)
class CapacityEntry:
    product_id: int
    trip_instant: datetime
    available: int
    cancelled: bool = False
