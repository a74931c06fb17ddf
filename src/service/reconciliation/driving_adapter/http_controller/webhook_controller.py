from fastapi import APIRouter, Depends, Request
from opentelemetry import trace

from src.platform.logging.loguru_io import Logger
from src.service.reconciliation.app.command.ingest_webhook_use_case import IngestWebhookUseCase
from src.service.reconciliation.domain.enum.payment_type import PaymentType
from src.service.reconciliation.driving_adapter.http_controller.schema.webhook_schema import (
    WebhookAckResponse,
)


router = APIRouter()
tracer = trace.get_tracer(__name__)


async def _ingest(
    *, payment_type: PaymentType, request: Request, use_case: IngestWebhookUseCase
) -> WebhookAckResponse:
    # Signatures cover the exact bytes, so the body is never re-serialized
    body = await request.body()
    with tracer.start_as_current_span('controller.webhook') as span:
        span.set_attribute('webhook.provider', payment_type.value)
        result = await use_case.execute(
            payment_type=payment_type, headers=dict(request.headers), body=body
        )
    return WebhookAckResponse(
        event_id=result.event_id, outcome=result.outcome.value, order_id=result.order_id
    )


@router.post('/paypal')
@Logger.io
async def paypal_webhook(
    request: Request,
    use_case: IngestWebhookUseCase = Depends(IngestWebhookUseCase.depends),
) -> WebhookAckResponse:
    return await _ingest(payment_type=PaymentType.PAYPAL, request=request, use_case=use_case)


@router.post('/stripe')
@Logger.io
async def stripe_webhook(
    request: Request,
    use_case: IngestWebhookUseCase = Depends(IngestWebhookUseCase.depends),
) -> WebhookAckResponse:
    return await _ingest(payment_type=PaymentType.STRIPE, request=request, use_case=use_case)
