from datetime import datetime
from decimal import Decimal
from typing import List, Literal, Optional

from pydantic import BaseModel, Field


class RefundTicketsRequest(BaseModel):
    line_item_ids: List[str] = Field(min_length=1)

    model_config = {'json_schema_extra': {'example': {'line_item_ids': ['5O190127TN364715T-0-0']}}}


class RefundTicketsResponse(BaseModel):
    refund_ids: List[str]
    refunded_line_item_ids: List[str]
    status: str


class TransferItemRequest(BaseModel):
    line_item_id: str
    new_sku: str
    new_name: str = ''
    old_sku: Optional[str] = None  # rejects the move when the item is no longer here


class TransferTicketsRequest(BaseModel):
    transfers: List[TransferItemRequest] = Field(min_length=1)

    model_config = {
        'json_schema_extra': {
            'example': {
                'transfers': [
                    {
                        'line_item_id': '5O190127TN364715T-0-0',
                        'old_sku': '12AM1700000000',
                        'new_sku': '12AM1700086400',
                        'new_name': 'AM Ticket, Wed Nov 15 10:00, Sunset cruise',
                    }
                ]
            }
        },
    }


class TransferResultResponse(BaseModel):
    line_item_id: str
    old_sku: str
    new_sku: str
    quantity: int


class ManualEntryRequest(BaseModel):
    product_id: int = Field(ge=0)
    timestamp: int = Field(ge=0)  # trip epoch seconds
    ticket_type: str = Field(pattern=r'^[A-Za-z]+$')
    quantity: int = Field(gt=0)
    entry_type: str = 'phone'
    description: str = ''
    name: str = ''
    email: str = ''
    phone: str = ''
    unit_amount: Decimal = Decimal('0')

    model_config = {
        'json_schema_extra': {
            'example': {
                'product_id': 12,
                'timestamp': 1700000000,
                'ticket_type': 'AM',
                'quantity': 2,
                'entry_type': 'phone',
                'name': 'Ada Lovelace',
                'email': 'ada@example.com',
            }
        },
    }


class LineItemResponse(BaseModel):
    id: str
    sku: str
    name: str
    quantity: int
    unit_amount: Decimal
    status: str


class OrderResponse(BaseModel):
    id: str
    merchant_id: str
    provider: str
    status: str
    channel: str
    payer_name: str
    payer_email: str
    line_items: List[LineItemResponse]


class SoldTicketsResponse(BaseModel):
    product_id: int
    timestamp: int
    quantity: int


class OrderSummaryResponse(BaseModel):
    line_item_id: str
    order_id: str
    sku: str
    name: str
    original_sku: str
    original_name: str
    quantity: int
    status: str
    channel: str
    payer_name: str
    payer_email: str
    payer_phone: str
    created_at: Optional[datetime] = None


class PassItemResponse(BaseModel):
    line_item_id: str
    sku: str
    name: str
    description: str
    quantity: int


class PassBundleResponse(BaseModel):
    order_id: str
    payer_name: str
    payer_email: str
    items: List[PassItemResponse]


class MerchantConfigRequest(BaseModel):
    payment_type: Literal['paypal', 'stripe']
    pass_title: str = ''
    email_from: str = ''
    email_name: str = ''
    notify_number: str = ''
    send_sms: bool = False
    sandbox_ids: List[str] = []
    stripe_account: str = ''
    stripe_secondary_account: str = ''
    stripe_fee_account: str = ''

    model_config = {
        'json_schema_extra': {
            'example': {
                'payment_type': 'paypal',
                'pass_title': 'Harbor Cruises',
                'email_from': 'tickets@example.com',
                'email_name': 'Harbor Cruises',
                'sandbox_ids': ['SANDBOXMERCHANT1'],
            }
        },
    }


class MerchantConfigResponse(MerchantConfigRequest):
    id: str
