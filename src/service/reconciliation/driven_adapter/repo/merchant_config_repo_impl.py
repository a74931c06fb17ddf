from typing import List, Optional

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from src.platform.database.orm_db_setting import dialect_insert
from src.platform.logging.loguru_io import Logger
from src.service.reconciliation.app.interface.i_merchant_config_repo import IMerchantConfigRepo
from src.service.reconciliation.domain.entity.merchant_config_entity import MerchantConfig
from src.service.reconciliation.domain.enum.payment_type import PaymentType
from src.service.reconciliation.driven_adapter.model.merchant_config_model import (
    MerchantConfigModel,
)


def _split_ids(raw: str) -> List[str]:
    return [part.strip() for part in (raw or '').split(',') if part.strip()]


class MerchantConfigRepoImpl(IMerchantConfigRepo):
    def __init__(self, *, session: AsyncSession) -> None:
        self.session = session

    @staticmethod
    def _to_entity(model: MerchantConfigModel) -> MerchantConfig:
        return MerchantConfig(
            id=model.id,
            payment_type=PaymentType(model.payment_type),
            pass_title=model.pass_title,
            email_from=model.email_from,
            email_name=model.email_name,
            notify_number=model.notify_number,
            send_sms=model.send_sms,
            sandbox_ids=_split_ids(model.sandbox_ids),
            stripe_account=model.stripe_account,
            stripe_secondary_account=model.stripe_secondary_account,
            stripe_fee_account=model.stripe_fee_account,
        )

    @Logger.io
    async def get(self, *, merchant_id: str) -> Optional[MerchantConfig]:
        result = await self.session.execute(
            select(MerchantConfigModel)
            .where(MerchantConfigModel.id == merchant_id)
            .execution_options(populate_existing=True)
        )
        model = result.scalar_one_or_none()
        return self._to_entity(model) if model else None

    @Logger.io
    async def find_by_reference(self, *, reference: str) -> Optional[MerchantConfig]:
        if not reference:
            return None
        config = await self.get(merchant_id=reference)
        if config is not None:
            return config

        result = await self.session.execute(
            select(MerchantConfigModel)
            .where(
                or_(
                    MerchantConfigModel.stripe_account == reference,
                    MerchantConfigModel.sandbox_ids.contains(reference),
                )
            )
            .order_by(MerchantConfigModel.id)
        )
        for model in result.scalars().all():
            # contains() is a substring match; confirm against the exact id list
            if model.stripe_account == reference or reference in _split_ids(model.sandbox_ids):
                return self._to_entity(model)
        return None

    @Logger.io
    async def save(self, *, config: MerchantConfig) -> MerchantConfig:
        values = {
            'id': config.id,
            'payment_type': str(config.payment_type),
            'pass_title': config.pass_title,
            'email_from': config.email_from,
            'email_name': config.email_name,
            'notify_number': config.notify_number,
            'send_sms': config.send_sms,
            'sandbox_ids': ','.join(config.sandbox_ids),
            'stripe_account': config.stripe_account,
            'stripe_secondary_account': config.stripe_secondary_account,
            'stripe_fee_account': config.stripe_fee_account,
        }
        await self.session.execute(
            dialect_insert(self.session, MerchantConfigModel)
            .values(**values)
            .on_conflict_do_update(
                index_elements=['id'],
                set_={key: value for key, value in values.items() if key != 'id'},
            )
        )
        return config
