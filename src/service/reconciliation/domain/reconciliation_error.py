"""Errors raised by the reconciliation engine, mapped to HTTP by the platform handlers."""

from src.platform.exception.exceptions import ConflictError, DomainError, FailedDependencyError


class SlotDecodeError(DomainError):
    def __init__(self, sku: str) -> None:
        self.sku = sku
        super().__init__(f'Malformed slot SKU: {sku!r}')


class WebhookAuthenticationError(DomainError):
    def __init__(self, message: str = 'Webhook signature verification failed') -> None:
        super().__init__(message)


class MalformedPayloadError(DomainError):
    def __init__(self, message: str) -> None:
        super().__init__(message)


class TransferError(DomainError):
    def __init__(self, message: str) -> None:
        super().__init__(message)


class CapacityError(ConflictError):
    def __init__(self, message: str) -> None:
        super().__init__(message)


class ProviderDependencyError(FailedDependencyError):
    """The remote payment API failed; the caller (or the provider's retry) should try again."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
