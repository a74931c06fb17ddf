from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import DateTime, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from src.platform.database.orm_db_setting import Base


class RefundModel(Base):
    __tablename__ = 'refund'

    id: Mapped[str] = mapped_column(String(64), primary_key=True)  # provider refund id
    # No FK: a refund notice may reference a capture recorded later
    capture_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True, index=True)
    order_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True, index=True)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default='completed')
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=0)
    line_item_ids: Mapped[str] = mapped_column(Text, nullable=False, default='')  # comma separated
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
