from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, Integer, String
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from src.platform.database.orm_db_setting import Base


class TransferRequestModel(Base):
    __tablename__ = 'transfer_request'

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    line_item_id: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    old_sku: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)
    new_sku: Mapped[str] = mapped_column(String(128), nullable=False)
    new_name: Mapped[str] = mapped_column(String(255), nullable=False, default='')
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
