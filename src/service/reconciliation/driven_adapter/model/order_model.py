from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import DateTime, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func

from src.platform.database.orm_db_setting import Base


class OrderModel(Base):
    __tablename__ = 'customer_order'

    id: Mapped[str] = mapped_column(String(64), primary_key=True)  # provider order id
    merchant_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    provider: Mapped[str] = mapped_column(String(16), nullable=False)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default='created')
    channel: Mapped[str] = mapped_column(String(32), nullable=False, default='online')
    payer_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    payer_name: Mapped[str] = mapped_column(String(255), nullable=False, default='')
    payer_email: Mapped[str] = mapped_column(String(255), nullable=False, default='')
    payer_phone: Mapped[str] = mapped_column(String(64), nullable=False, default='')
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )

    line_items: Mapped[List['LineItemModel']] = relationship(
        'LineItemModel', back_populates='order', lazy='selectin', order_by='LineItemModel.id'
    )
    captures: Mapped[List['CaptureModel']] = relationship(
        'CaptureModel', back_populates='order', lazy='selectin', order_by='CaptureModel.id'
    )


class LineItemModel(Base):
    __tablename__ = 'line_item'

    id: Mapped[str] = mapped_column(String(128), primary_key=True)
    order_id: Mapped[str] = mapped_column(
        String(64), ForeignKey('customer_order.id'), nullable=False, index=True
    )
    sku: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False, default='')
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    unit_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=0)
    description: Mapped[str] = mapped_column(Text, nullable=False, default='')
    status: Mapped[str] = mapped_column(String(16), nullable=False, default='active')

    order: Mapped['OrderModel'] = relationship('OrderModel', back_populates='line_items')


class CaptureModel(Base):
    __tablename__ = 'capture'

    id: Mapped[str] = mapped_column(String(64), primary_key=True)  # provider capture id
    order_id: Mapped[str] = mapped_column(
        String(64), ForeignKey('customer_order.id'), nullable=False, index=True
    )
    status: Mapped[str] = mapped_column(String(16), nullable=False, default='completed')
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=0)
    currency: Mapped[str] = mapped_column(String(8), nullable=False, default='USD')
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )

    order: Mapped['OrderModel'] = relationship('OrderModel', back_populates='captures')
