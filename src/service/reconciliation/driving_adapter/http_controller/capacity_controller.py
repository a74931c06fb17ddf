from typing import List

from fastapi import APIRouter, Depends

from src.platform.logging.loguru_io import Logger
from src.service.reconciliation.app.command.override_capacity_use_case import (
    OverrideCapacityUseCase,
)
from src.service.reconciliation.app.query.capacity_query_use_case import CapacityQueryUseCase
from src.service.reconciliation.domain.entity.capacity_entry_entity import CapacityEntry
from src.service.reconciliation.domain.entity.operator_entity import Operator
from src.service.reconciliation.domain.value_object.slot_key import from_epoch, to_epoch
from src.service.reconciliation.driving_adapter.http_controller.auth.operator_auth import (
    get_current_operator,
)
from src.service.reconciliation.driving_adapter.http_controller.schema.capacity_schema import (
    CapacityOverrideRequest,
    CapacityResponse,
)


router = APIRouter()


def _capacity_response(entry: CapacityEntry) -> CapacityResponse:
    return CapacityResponse(
        product_id=entry.product_id,
        timestamp=to_epoch(entry.trip_instant),
        trip_instant=entry.trip_instant,
        available=entry.available,
        cancelled=entry.cancelled,
    )


@router.get('')
@Logger.io
async def list_capacity(
    from_ts: int,
    to_ts: int,
    use_case: CapacityQueryUseCase = Depends(CapacityQueryUseCase.depends),
) -> List[CapacityResponse]:
    entries = await use_case.list_capacity(
        from_instant=from_epoch(from_ts), to_instant=from_epoch(to_ts)
    )
    return [_capacity_response(entry) for entry in entries]


@router.get('/{product_id}/{timestamp}')
@Logger.io
async def get_capacity(
    product_id: int,
    timestamp: int,
    use_case: CapacityQueryUseCase = Depends(CapacityQueryUseCase.depends),
) -> CapacityResponse:
    entry = await use_case.get_capacity(product_id=product_id, trip_instant=from_epoch(timestamp))
    return _capacity_response(entry)


@router.put('')
@Logger.io
async def override_capacity(
    request: CapacityOverrideRequest,
    operator: Operator = Depends(get_current_operator),
    use_case: OverrideCapacityUseCase = Depends(OverrideCapacityUseCase.depends),
) -> CapacityResponse:
    entry = await use_case.execute(
        product_id=request.product_id,
        trip_instant=from_epoch(request.timestamp),
        available=request.available,
        cancelled=request.cancelled,
    )
    return _capacity_response(entry)
