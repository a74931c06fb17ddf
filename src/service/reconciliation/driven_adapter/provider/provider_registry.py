from src.platform.database.unit_of_work import AbstractUnitOfWork
from src.platform.exception.exceptions import DomainError
from src.service.reconciliation.app.interface.i_payment_provider import IPaymentProvider
from src.service.reconciliation.app.interface.i_paypal_gateway import IPaypalGateway
from src.service.reconciliation.app.interface.i_provider_registry import IProviderRegistry
from src.service.reconciliation.app.interface.i_stripe_gateway import IStripeGateway
from src.service.reconciliation.domain.enum.payment_type import PaymentType
from src.service.reconciliation.driven_adapter.provider.paypal_provider import PaypalProvider
from src.service.reconciliation.driven_adapter.provider.stripe_provider import StripeProvider


class ProviderRegistry(IProviderRegistry):
    """
    Provider Registry

    Gateways are process-wide singletons (token cache, SDK client); providers are
    built per request around the request's unit of work.
    """

    def __init__(
        self,
        *,
        paypal_gateway: IPaypalGateway,
        stripe_gateway: IStripeGateway,
        stripe_split_per_ticket_cents: int = 500,
        enforce_floor: bool = False,
    ) -> None:
        self.paypal_gateway = paypal_gateway
        self.stripe_gateway = stripe_gateway
        self.stripe_split_per_ticket_cents = stripe_split_per_ticket_cents
        self.enforce_floor = enforce_floor

    def provider_for(
        self, payment_type: PaymentType, *, uow: AbstractUnitOfWork
    ) -> IPaymentProvider:
        if payment_type == PaymentType.PAYPAL:
            return PaypalProvider(
                uow=uow, gateway=self.paypal_gateway, enforce_floor=self.enforce_floor
            )
        if payment_type == PaymentType.STRIPE:
            return StripeProvider(
                uow=uow,
                gateway=self.stripe_gateway,
                split_per_ticket_cents=self.stripe_split_per_ticket_cents,
                enforce_floor=self.enforce_floor,
            )
        raise DomainError(f'Unsupported payment type: {payment_type}')
