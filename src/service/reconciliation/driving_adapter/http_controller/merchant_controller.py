from typing import List

from fastapi import APIRouter, Depends, status

from src.platform.logging.loguru_io import Logger
from src.service.reconciliation.app.command.capture_order_use_case import CaptureOrderUseCase
from src.service.reconciliation.app.command.merchant_config_use_case import MerchantConfigUseCase
from src.service.reconciliation.app.command.record_manual_entry_use_case import (
    RecordManualEntryUseCase,
)
from src.service.reconciliation.app.command.refund_tickets_use_case import RefundTicketsUseCase
from src.service.reconciliation.app.command.transfer_tickets_use_case import (
    TransferTicketsUseCase,
)
from src.service.reconciliation.app.dto.admin_dto import ManualEntry
from src.service.reconciliation.app.query.merchant_report_use_case import MerchantReportUseCase
from src.service.reconciliation.domain.entity.merchant_config_entity import MerchantConfig
from src.service.reconciliation.domain.entity.operator_entity import Operator
from src.service.reconciliation.domain.entity.order_entity import Order
from src.service.reconciliation.domain.entity.transfer_request_entity import TransferRequest
from src.service.reconciliation.domain.enum.payment_type import PaymentType
from src.service.reconciliation.domain.value_object.slot_key import from_epoch, to_epoch
from src.service.reconciliation.driving_adapter.http_controller.auth.operator_auth import (
    require_merchant_operator,
)
from src.service.reconciliation.driving_adapter.http_controller.schema.merchant_schema import (
    LineItemResponse,
    ManualEntryRequest,
    MerchantConfigRequest,
    MerchantConfigResponse,
    OrderResponse,
    OrderSummaryResponse,
    PassBundleResponse,
    PassItemResponse,
    RefundTicketsRequest,
    RefundTicketsResponse,
    SoldTicketsResponse,
    TransferItemRequest,
    TransferResultResponse,
    TransferTicketsRequest,
)


router = APIRouter()


def _order_response(order: Order) -> OrderResponse:
    return OrderResponse(
        id=order.id,
        merchant_id=order.merchant_id,
        provider=order.provider.value,
        status=order.status.value,
        channel=order.channel,
        payer_name=order.payer.name,
        payer_email=order.payer.email,
        line_items=[
            LineItemResponse(
                id=item.id,
                sku=item.sku,
                name=item.name,
                quantity=item.quantity,
                unit_amount=item.unit_amount,
                status=item.status.value,
            )
            for item in order.line_items
        ],
    )


def _transfer_request(item: TransferItemRequest) -> TransferRequest:
    return TransferRequest.create(
        line_item_id=item.line_item_id,
        new_sku=item.new_sku,
        new_name=item.new_name,
        old_sku=item.old_sku,
    )


@router.post('/{merchant_id}/refund')
@Logger.io
async def refund_tickets(
    merchant_id: str,
    request: RefundTicketsRequest,
    operator: Operator = Depends(require_merchant_operator),
    use_case: RefundTicketsUseCase = Depends(RefundTicketsUseCase.depends),
) -> RefundTicketsResponse:
    confirmation = await use_case.execute(
        merchant_id=merchant_id, line_item_ids=request.line_item_ids
    )
    return RefundTicketsResponse(
        refund_ids=confirmation.refund_ids,
        refunded_line_item_ids=confirmation.refunded_line_item_ids,
        status=confirmation.status,
    )


@router.post('/{merchant_id}/transfer')
@Logger.io
async def transfer_tickets(
    merchant_id: str,
    request: TransferTicketsRequest,
    operator: Operator = Depends(require_merchant_operator),
    use_case: TransferTicketsUseCase = Depends(TransferTicketsUseCase.depends),
) -> List[TransferResultResponse]:
    results = await use_case.execute(
        merchant_id=merchant_id,
        requests=[_transfer_request(item) for item in request.transfers],
    )
    return [
        TransferResultResponse(
            line_item_id=result.line_item_id,
            old_sku=result.old_sku,
            new_sku=result.new_sku,
            quantity=result.quantity,
        )
        for result in results
    ]


@router.post('/{merchant_id}/manual-entry', status_code=status.HTTP_201_CREATED)
@Logger.io
async def record_manual_entry(
    merchant_id: str,
    request: ManualEntryRequest,
    operator: Operator = Depends(require_merchant_operator),
    use_case: RecordManualEntryUseCase = Depends(RecordManualEntryUseCase.depends),
) -> OrderResponse:
    order = await use_case.execute(
        merchant_id=merchant_id,
        entry=ManualEntry(
            product_id=request.product_id,
            timestamp=request.timestamp,
            ticket_type=request.ticket_type,
            quantity=request.quantity,
            entry_type=request.entry_type,
            description=request.description,
            name=request.name,
            email=request.email,
            phone=request.phone,
            unit_amount=str(request.unit_amount),
        ),
    )
    return _order_response(order)


@router.post('/{merchant_id}/capture/{order_id}')
@Logger.io
async def capture_order(
    merchant_id: str,
    order_id: str,
    operator: Operator = Depends(require_merchant_operator),
    use_case: CaptureOrderUseCase = Depends(CaptureOrderUseCase.depends),
) -> OrderResponse:
    order = await use_case.execute(merchant_id=merchant_id, order_id=order_id)
    return _order_response(order)


@router.get('/{merchant_id}/sold')
@Logger.io
async def list_sold_tickets(
    merchant_id: str,
    from_ts: int,
    to_ts: int,
    operator: Operator = Depends(require_merchant_operator),
    use_case: MerchantReportUseCase = Depends(MerchantReportUseCase.depends),
) -> List[SoldTicketsResponse]:
    sold = await use_case.list_sold_tickets(
        merchant_id=merchant_id, from_instant=from_epoch(from_ts), to_instant=from_epoch(to_ts)
    )
    return [
        SoldTicketsResponse(
            product_id=entry.product_id,
            timestamp=to_epoch(entry.trip_instant),
            quantity=entry.quantity,
        )
        for entry in sold
    ]


@router.get('/{merchant_id}/orders/{timestamp}')
@Logger.io
async def list_orders_at_slot(
    merchant_id: str,
    timestamp: int,
    operator: Operator = Depends(require_merchant_operator),
    use_case: MerchantReportUseCase = Depends(MerchantReportUseCase.depends),
) -> List[OrderSummaryResponse]:
    summaries = await use_case.list_orders_at_slot(
        merchant_id=merchant_id, trip_instant=from_epoch(timestamp)
    )
    return [
        OrderSummaryResponse.model_validate(summary, from_attributes=True)
        for summary in summaries
    ]


@router.get('/{merchant_id}/passes/{order_id}')
@Logger.io
async def get_pass_items(
    merchant_id: str,
    order_id: str,
    operator: Operator = Depends(require_merchant_operator),
    use_case: MerchantReportUseCase = Depends(MerchantReportUseCase.depends),
) -> PassBundleResponse:
    bundle = await use_case.get_pass_items(merchant_id=merchant_id, order_id=order_id)
    return PassBundleResponse(
        order_id=bundle.order_id,
        payer_name=bundle.payer_name,
        payer_email=bundle.payer_email,
        items=[
            PassItemResponse.model_validate(item, from_attributes=True) for item in bundle.items
        ],
    )


def _config_response(config: MerchantConfig) -> MerchantConfigResponse:
    return MerchantConfigResponse(
        id=config.id,
        payment_type=config.payment_type.value,
        pass_title=config.pass_title,
        email_from=config.email_from,
        email_name=config.email_name,
        notify_number=config.notify_number,
        send_sms=config.send_sms,
        sandbox_ids=list(config.sandbox_ids),
        stripe_account=config.stripe_account,
        stripe_secondary_account=config.stripe_secondary_account,
        stripe_fee_account=config.stripe_fee_account,
    )


@router.get('/{merchant_id}/config')
@Logger.io
async def get_merchant_config(
    merchant_id: str,
    operator: Operator = Depends(require_merchant_operator),
    use_case: MerchantConfigUseCase = Depends(MerchantConfigUseCase.depends),
) -> MerchantConfigResponse:
    config = await use_case.get(merchant_id=merchant_id)
    return _config_response(config)


@router.put('/{merchant_id}/config')
@Logger.io
async def save_merchant_config(
    merchant_id: str,
    request: MerchantConfigRequest,
    operator: Operator = Depends(require_merchant_operator),
    use_case: MerchantConfigUseCase = Depends(MerchantConfigUseCase.depends),
) -> MerchantConfigResponse:
    config = await use_case.save(
        config=MerchantConfig(
            id=merchant_id,
            payment_type=PaymentType(request.payment_type),
            pass_title=request.pass_title,
            email_from=request.email_from,
            email_name=request.email_name,
            notify_number=request.notify_number,
            send_sms=request.send_sms,
            sandbox_ids=list(request.sandbox_ids),
            stripe_account=request.stripe_account,
            stripe_secondary_account=request.stripe_secondary_account,
            stripe_fee_account=request.stripe_fee_account,
        )
    )
    return _config_response(config)
