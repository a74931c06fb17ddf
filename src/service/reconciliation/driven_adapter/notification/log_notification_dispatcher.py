"""
Notification dispatcher writing purchase / refund notices to the log.

Stands in for email and SMS delivery: the messages it renders are what a
mail or SMS transport would send.
"""

from typing import List, Optional

from src.platform.logging.loguru_io import Logger
from src.service.reconciliation.app.interface.i_notification_dispatcher import (
    INotificationDispatcher,
)
from src.service.reconciliation.domain.entity.merchant_config_entity import MerchantConfig
from src.service.reconciliation.domain.entity.order_entity import LineItem, Order
from src.service.reconciliation.domain.value_object.slot_key import is_show_sku


def render_items(items: List[LineItem]) -> str:
    return '; '.join(
        f'{item.quantity} {item.name}' + (f', {item.description}' if item.description else '')
        for item in items
    )


class LogNotificationDispatcher(INotificationDispatcher):
    async def notify_purchase(self, *, order: Order, config: Optional[MerchantConfig]) -> None:
        is_show = bool(order.line_items) and is_show_sku(order.line_items[0].sku)
        subject = 'Your show tickets' if is_show else 'Your trip tickets'
        sender = config.email_name if config and config.email_name else 'Ticketing'

        Logger.base.info(
            f'📧 [Notify] {subject} from {sender} -> {order.payer.email or "<no email>"}'
            f' | order={order.id} items: {render_items(order.line_items)}'
        )
        if config and config.send_sms and config.notify_number:
            Logger.base.info(
                f'📱 [Notify] SMS -> {config.notify_number}: new order {order.id}'
                f' from {order.payer.name or "unknown"}'
            )

    async def notify_refund(
        self, *, order: Order, refunded_items: List[LineItem], config: Optional[MerchantConfig]
    ) -> None:
        sender = config.email_name if config and config.email_name else 'Ticketing'
        Logger.base.info(
            f'📧 [Notify] Refund confirmation from {sender} -> {order.payer.email or "<no email>"}'
            f' | order={order.id} items: {render_items(refunded_items)}'
        )
        if config and config.send_sms and config.notify_number:
            Logger.base.info(
                f'📱 [Notify] SMS -> {config.notify_number}: refund on order {order.id}'
            )
