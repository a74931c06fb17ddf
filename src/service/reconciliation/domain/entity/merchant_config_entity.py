from typing import List

import attrs

from src.service.reconciliation.domain.enum.payment_type import PaymentType


@attrs.define(frozen=True)
class MerchantConfig:
    id: str
    payment_type: PaymentType
    pass_title: str = ''
    email_from: str = ''
    email_name: str = ''
    notify_number: str = ''
    send_sms: bool = False
    sandbox_ids: List[str] = attrs.field(factory=list)
    # Stripe Connect accounts taking part in the split of each sale
    stripe_account: str = ''
    stripe_secondary_account: str = ''
    stripe_fee_account: str = ''

    def merchant_ids(self) -> List[str]:
        """Ids orders may be recorded under (live id first, then sandbox ids)."""
        return [self.id, *[sid for sid in self.sandbox_ids if sid and sid != self.id]]
