"""
https://python-dependency-injector.ets-labs.org/index.html
https://python-dependency-injector.ets-labs.org/examples/fastapi-sqlalchemy.html
"""

from dependency_injector import containers, providers

from src.platform.config.core_setting import Settings
from src.service.reconciliation.driven_adapter.gateway.paypal_api_client import PaypalApiClient
from src.service.reconciliation.driven_adapter.gateway.stripe_gateway import StripeGateway
from src.service.reconciliation.driven_adapter.notification.log_notification_dispatcher import (
    LogNotificationDispatcher,
)
from src.service.reconciliation.driven_adapter.provider.provider_registry import ProviderRegistry
from src.service.reconciliation.driving_adapter.http_controller.auth.jwt_auth import JwtAuth


class Container(containers.DeclarativeContainer):
    # Configuration
    config_service = providers.Singleton(Settings)

    # Payment gateways (process-wide: PayPal token cache, Stripe SDK key)
    paypal_gateway = providers.Singleton(
        PaypalApiClient,
        base_url=config_service.provided.PAYPAL_BASE_URL,
        client_id=config_service.provided.PAYPAL_CLIENT_ID,
        client_secret=config_service.provided.PAYPAL_CLIENT_SECRET.get_secret_value.call(),
        webhook_id=config_service.provided.PAYPAL_WEBHOOK_ID,
        timeout_seconds=config_service.provided.PAYPAL_TIMEOUT_SECONDS,
        token_refresh_margin_seconds=config_service.provided.PAYPAL_TOKEN_REFRESH_MARGIN_SECONDS,
    )
    stripe_gateway = providers.Singleton(
        StripeGateway,
        api_key=config_service.provided.STRIPE_API_KEY.get_secret_value.call(),
        webhook_secret=config_service.provided.STRIPE_WEBHOOK_SECRET.get_secret_value.call(),
        webhook_tolerance_seconds=config_service.provided.STRIPE_WEBHOOK_TOLERANCE_SECONDS,
        timeout_seconds=config_service.provided.STRIPE_TIMEOUT_SECONDS,
    )

    # Provider dispatch on merchant payment_type (providers are built per request)
    provider_registry = providers.Singleton(
        ProviderRegistry,
        paypal_gateway=paypal_gateway,
        stripe_gateway=stripe_gateway,
        stripe_split_per_ticket_cents=config_service.provided.STRIPE_SPLIT_PER_TICKET_CENTS,
        enforce_floor=config_service.provided.LEDGER_ENFORCE_FLOOR,
    )

    # Purchase / refund notifications
    notification_dispatcher = providers.Singleton(LogNotificationDispatcher)

    # Auth service
    jwt_auth = providers.Singleton(JwtAuth)


container = Container()


def setup() -> None:
    container.config_service()


def cleanup() -> None:
    container.reset_singletons()
