from sqlalchemy import Boolean, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from src.platform.database.orm_db_setting import Base


class MerchantConfigModel(Base):
    __tablename__ = 'merchant_config'

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    payment_type: Mapped[str] = mapped_column(String(16), nullable=False)
    pass_title: Mapped[str] = mapped_column(String(255), nullable=False, default='')
    email_from: Mapped[str] = mapped_column(String(255), nullable=False, default='')
    email_name: Mapped[str] = mapped_column(String(255), nullable=False, default='')
    notify_number: Mapped[str] = mapped_column(String(64), nullable=False, default='')
    send_sms: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    sandbox_ids: Mapped[str] = mapped_column(Text, nullable=False, default='')  # comma separated
    stripe_account: Mapped[str] = mapped_column(String(64), nullable=False, default='', index=True)
    stripe_secondary_account: Mapped[str] = mapped_column(String(64), nullable=False, default='')
    stripe_fee_account: Mapped[str] = mapped_column(String(64), nullable=False, default='')
